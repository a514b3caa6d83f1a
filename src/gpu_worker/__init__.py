"""
gpu_worker - GPU-accelerated transforms for animated GIFs

Every frame of a GIF is uploaded as a texture, run through a fragment
shader on a full-screen quad, read back and re-encoded with the original
timing and metadata.

Architecture:
- GpuContext: Shared device/queue, transient resources, async readback
- TextureTransformPipeline: Compiled once, executed per frame
- Transforms: Mirror (vertical flip) and Gaussian blur
- GifCodec: Decode to / encode from FrameSequence
- TransformOrchestrator: Decode -> transform each frame -> encode

Example:
    from gpu_worker import GpuContext, MirrorTransform, TransformOrchestrator

    gpu_ctx = await GpuContext.create()
    mirror = MirrorTransform(gpu_ctx)
    out = await TransformOrchestrator().run(gif_bytes, mirror)
"""

__version__ = "0.1.0"

# Core infrastructure
from .errors import (
    BufferMapError,
    ConfigError,
    DecodeError,
    EmptyInputError,
    EncodeError,
    GpuError,
    GpuExecutionError,
    GpuInitError,
    GpuWorkerError,
    InputError,
    InvalidFrameSize,
    PipelineCreationError,
    ProcessingError,
    ShaderCompileError,
)
from .gpu import COPY_BYTES_PER_ROW_ALIGNMENT, GpuContext, ShaderConfig, TextureTransformPipeline

# Transforms
from .transforms import (
    BlurTransform,
    MirrorTransform,
    TextureTransform,
    available_transforms,
    create_transform,
)

# Frames and codec
from .frames import DisposalMethod, Frame, FrameSequence, normalize_frame
from .codec import GifCodec
from .orchestrator import TransformOrchestrator, transform_image

__all__ = [
    '__version__',

    # Errors
    'GpuWorkerError',
    'GpuError',
    'GpuInitError',
    'ShaderCompileError',
    'PipelineCreationError',
    'BufferMapError',
    'GpuExecutionError',
    'InputError',
    'EmptyInputError',
    'DecodeError',
    'InvalidFrameSize',
    'ProcessingError',
    'EncodeError',
    'ConfigError',

    # GPU
    'COPY_BYTES_PER_ROW_ALIGNMENT',
    'GpuContext',
    'ShaderConfig',
    'TextureTransformPipeline',

    # Transforms
    'TextureTransform',
    'MirrorTransform',
    'BlurTransform',
    'available_transforms',
    'create_transform',

    # Frames and codec
    'DisposalMethod',
    'Frame',
    'FrameSequence',
    'normalize_frame',
    'GifCodec',
    'TransformOrchestrator',
    'transform_image',
]
