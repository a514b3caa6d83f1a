"""
Error types for gpu_worker.

Every failure in the core is raised as one of these exceptions and stops
the current request. Nothing is retried inside the core.

Hierarchy:
    GpuWorkerError
    ├── GpuError              GPU / internal failures
    │   ├── GpuInitError
    │   ├── ShaderCompileError
    │   ├── PipelineCreationError
    │   ├── BufferMapError
    │   └── GpuExecutionError
    ├── InputError            caller supplied bad data
    │   ├── EmptyInputError
    │   ├── DecodeError
    │   └── InvalidFrameSize
    ├── ProcessingError
    │   └── EncodeError
    └── ConfigError
"""


class GpuWorkerError(Exception):
    """Base class for all gpu_worker errors."""

    error_type = 'internal_error'


class GpuError(GpuWorkerError):
    """GPU or driver failure."""

    error_type = 'internal_error'


class GpuInitError(GpuError):
    """No suitable adapter was found or the device request was refused."""


class ShaderCompileError(GpuError):
    """The driver rejected a shader module."""


class PipelineCreationError(GpuError):
    """The driver rejected a bind group layout or render pipeline."""


class BufferMapError(GpuError):
    """Mapping a readback buffer failed or the notification never arrived."""


class GpuExecutionError(GpuError):
    """The driver rejected a command while executing a transform."""


class InputError(GpuWorkerError):
    """The caller supplied data the core cannot work with."""

    error_type = 'invalid_request'


class EmptyInputError(InputError):
    """No payload, or an empty one, was supplied."""


class DecodeError(InputError):
    """The container is malformed or holds no frames."""

    error_type = 'processing_error'


class InvalidFrameSize(InputError):
    """A frame buffer is neither width*height*3 nor width*height*4 bytes."""

    error_type = 'processing_error'

    def __init__(self, actual: int, width: int, height: int):
        self.actual = actual
        self.width = width
        self.height = height
        super().__init__(
            f"Unexpected frame buffer size: {actual} bytes "
            f"(expected {width * height * 4} or {width * height * 3} bytes "
            f"for {width}x{height})"
        )


class ProcessingError(GpuWorkerError):
    """The input was valid but could not be processed."""

    error_type = 'processing_error'


class EncodeError(ProcessingError):
    """Re-serializing the transformed frames failed."""


class ConfigError(GpuWorkerError):
    """Invalid process configuration."""

    error_type = 'config_error'


__all__ = [
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
]
