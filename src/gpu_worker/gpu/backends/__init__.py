"""GPU backends."""

from .webgpu import WebGPUBackend

__all__ = ['WebGPUBackend']
