"""
WGSL Shader Library for gpu_worker.

Pre-written WebGPU shaders for the full-screen-quad transform pipeline.

Example usage:
    from gpu_worker.shaders import MIRROR_SHADER

    pipeline = TextureTransformPipeline(gpu_ctx, ShaderConfig(
        label="mirror",
        vertex_source=MIRROR_SHADER,
        fragment_source=MIRROR_SHADER,
    ))
"""

from .blur import BLUR_PARAMS_SIZE, GAUSSIAN_BLUR_SHADER
from .transforms import MIRROR_SHADER, PASSTHROUGH_SHADER, QUAD_VERTEX_SHADER

__all__ = [
    # Quad shaders
    'QUAD_VERTEX_SHADER',
    'PASSTHROUGH_SHADER',
    'MIRROR_SHADER',

    # Blur shaders
    'GAUSSIAN_BLUR_SHADER',
    'BLUR_PARAMS_SIZE',
]
