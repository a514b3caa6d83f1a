"""
GPU acceleration using WebGPU.

This module provides a unified GPU backend using WebGPU, which automatically
selects the best native backend per platform:
- macOS: Metal
- Windows: Direct3D 12
- Linux: Vulkan

Example:
    gpu_ctx = await GpuContext.create()
    pipeline = TextureTransformPipeline(gpu_ctx, shader_config)
    output = await pipeline.execute(rgba_bytes, width, height)
"""

from .context import COPY_BYTES_PER_ROW_ALIGNMENT, GpuContext, InvocationScope
from .pipeline import ShaderConfig, TextureTransformPipeline

__all__ = [
    'COPY_BYTES_PER_ROW_ALIGNMENT',
    'GpuContext',
    'InvocationScope',
    'ShaderConfig',
    'TextureTransformPipeline',
]
