"""
GPU context for managing WebGPU device and queue.

This module provides a high-level context for GPU operations,
abstracting the underlying WebGPU backend. It owns the long-lived
device/queue pair, hands out invocation scopes for transient resources
and implements the asynchronous readback path.
"""

import logging
from contextlib import ExitStack, contextmanager
from typing import Any, Dict, Iterator, Optional

import numpy as np

from ..errors import BufferMapError
from .backends.webgpu import WebGPUBackend

try:
    import wgpu
    HAS_WGPU = True
except ImportError:
    HAS_WGPU = False


logger = logging.getLogger(__name__)

# Row alignment required for texture <-> buffer copies (wgpu::COPY_BYTES_PER_ROW_ALIGNMENT)
COPY_BYTES_PER_ROW_ALIGNMENT = 256

BYTES_PER_PIXEL = 4


class InvocationScope:
    """
    Owner of the transient GPU resources of a single invocation.

    Every texture and buffer created through the scope is destroyed when
    the enclosing ``GpuContext.scope()`` block exits, whether it exits
    normally or through an exception.

    Example:
        with gpu_ctx.scope("mirror") as scope:
            texture = scope.create_texture(640, 480, usage)
            ...
        # texture destroyed here
    """

    def __init__(self, context: 'GpuContext', stack: ExitStack, label: str):
        self.context = context
        self.label = label
        self._stack = stack
        self._resources = 0

    def track(self, resource: Any) -> Any:
        """Register a resource to be destroyed when the scope exits."""
        self._stack.callback(resource.destroy)
        self._resources += 1
        return resource

    def create_texture(self, width: int, height: int, usage: int, label: Optional[str] = None) -> 'wgpu.GPUTexture':
        return self.track(
            self.context.create_texture(width, height, usage=usage, label=label or f"{self.label} texture")
        )

    def create_buffer(self, size: int, usage: int, label: Optional[str] = None) -> 'wgpu.GPUBuffer':
        return self.track(
            self.context.create_buffer(size, usage=usage, label=label or f"{self.label} buffer")
        )

    def create_buffer_init(self, data: bytes, usage: int, label: Optional[str] = None) -> 'wgpu.GPUBuffer':
        return self.track(
            self.context.create_buffer_init(data, usage=usage, label=label or f"{self.label} buffer")
        )

    def __len__(self) -> int:
        return self._resources


class GpuContext:
    """
    GPU context shared by every transform pipeline.

    Manages the WebGPU device and queue and provides primitive resource
    operations. The context is created once at startup and injected into
    each transform; it is never mutated after construction.

    Example:
        # Create context
        gpu_ctx = await GpuContext.create()

        # Get device info
        print(f"Using {gpu_ctx.backend_name} on {gpu_ctx.device_name}")

        # Read a mapped buffer back to the CPU
        data = await gpu_ctx.read_buffer(staging_buffer)
    """

    def __init__(self, backend: WebGPUBackend):
        """
        Initialize GPU context (use create() instead).

        Args:
            backend: WebGPU backend instance
        """
        self.backend = backend
        self._closed = False

    @classmethod
    async def create(
        cls,
        power_preference: str = 'high-performance'
    ) -> 'GpuContext':
        """
        Create GPU context (async).

        Selects an adapter with the requested power preference and
        requests a device from it.

        Args:
            power_preference: 'high-performance' or 'low-power'

        Returns:
            GpuContext instance

        Raises:
            GpuInitError: If no adapter is found or the device is refused
        """
        backend = await WebGPUBackend.create(power_preference=power_preference)
        return cls(backend=backend)

    @property
    def device(self) -> 'wgpu.GPUDevice':
        """Get WebGPU device."""
        return self.backend.device

    @property
    def queue(self) -> 'wgpu.GPUQueue':
        """Get WebGPU command queue."""
        return self.backend.queue

    @property
    def adapter(self) -> 'wgpu.GPUAdapter':
        """Get WebGPU adapter."""
        return self.backend.adapter

    @property
    def backend_name(self) -> str:
        """
        Get backend name.

        Returns:
            'Metal' (macOS), 'D3D12' (Windows), or 'Vulkan' (Linux)
        """
        return self.backend.adapter_info['backend_type']

    @property
    def device_name(self) -> str:
        """GPU device name (e.g., "Apple M1 Pro", "NVIDIA RTX 4090")."""
        return self.backend.adapter_info.get('description', 'Unknown GPU')

    @property
    def limits(self) -> Dict[str, int]:
        """Device limits."""
        return self.backend.limits

    @property
    def closed(self) -> bool:
        return self._closed

    def create_texture(
        self,
        width: int,
        height: int,
        usage: int,
        label: Optional[str] = None,
        format: str = 'rgba8unorm'
    ) -> 'wgpu.GPUTexture':
        """
        Create a 2-D GPU texture.

        Resource exhaustion is not reported here; it surfaces in the
        GPU operations that use the texture.

        Args:
            width: Texture width in pixels
            height: Texture height in pixels
            usage: Texture usage flags
            label: Optional debug label
            format: Texture format (default: 'rgba8unorm')

        Returns:
            WebGPU texture
        """
        return self.device.create_texture(
            label=label or "",
            size=(width, height, 1),
            mip_level_count=1,
            sample_count=1,
            dimension='2d',
            format=format,
            usage=usage,
        )

    def create_buffer(
        self,
        size: int,
        usage: int,
        label: Optional[str] = None
    ) -> 'wgpu.GPUBuffer':
        """
        Create an uninitialized GPU buffer.

        Args:
            size: Buffer size in bytes
            usage: Buffer usage flags
            label: Optional debug label

        Returns:
            WebGPU buffer
        """
        return self.device.create_buffer(label=label or "", size=size, usage=usage)

    def create_buffer_init(
        self,
        data: Any,
        usage: int,
        label: Optional[str] = None
    ) -> 'wgpu.GPUBuffer':
        """
        Create a GPU buffer initialized with ``data``.

        Args:
            data: Bytes-like object or numpy array
            usage: Buffer usage flags
            label: Optional debug label

        Returns:
            WebGPU buffer
        """
        return self.device.create_buffer_with_data(label=label or "", data=data, usage=usage)

    def create_sampler(self) -> 'wgpu.GPUSampler':
        """Linear-filtering, clamp-to-edge sampler."""
        return self.device.create_sampler(
            label="linear clamp sampler",
            address_mode_u='clamp-to-edge',
            address_mode_v='clamp-to-edge',
            address_mode_w='clamp-to-edge',
            mag_filter='linear',
            min_filter='linear',
            mipmap_filter='nearest',
        )

    @contextmanager
    def scope(self, label: str = "invocation") -> Iterator[InvocationScope]:
        """
        Open an invocation scope.

        Resources created through the yielded scope never outlive the
        ``with`` block.
        """
        with ExitStack() as stack:
            scope = InvocationScope(self, stack, label)
            yield scope
            logger.debug("Releasing %d resources of %s", len(scope), label)

    @staticmethod
    def aligned_row_stride(width: int) -> int:
        """
        Bytes per row of a texture-to-buffer copy for ``width`` pixels.

        Smallest multiple of COPY_BYTES_PER_ROW_ALIGNMENT that holds
        ``width`` RGBA8 pixels.
        """
        unpadded = BYTES_PER_PIXEL * width
        align = COPY_BYTES_PER_ROW_ALIGNMENT
        return (unpadded + align - 1) // align * align

    @staticmethod
    def remove_padding(data: bytes, width: int, height: int, stride: int) -> bytes:
        """
        Strip the per-row padding added by a texture-to-buffer copy.

        For each of ``height`` rows, keeps the first ``4 * width`` bytes
        starting at ``row * stride``.

        Raises:
            ValueError: If ``stride`` is smaller than a row or ``data`` is
                shorter than ``stride * height``
        """
        row_bytes = BYTES_PER_PIXEL * width
        if stride < row_bytes:
            raise ValueError(f"Row stride {stride} is smaller than row size {row_bytes}")
        if len(data) < stride * height:
            raise ValueError(
                f"Buffer too small: {len(data)} bytes for {height} rows of stride {stride}"
            )

        if stride == row_bytes:
            return bytes(data[:row_bytes * height])

        rows = np.frombuffer(data, dtype=np.uint8, count=stride * height).reshape(height, stride)
        return rows[:, :row_bytes].tobytes()

    @staticmethod
    def add_padding(data: bytes, width: int, height: int, stride: int) -> bytes:
        """
        Lay tightly packed rows out at ``stride`` bytes per row.

        Inverse of remove_padding(); padding bytes are zero.
        """
        row_bytes = BYTES_PER_PIXEL * width
        if stride < row_bytes:
            raise ValueError(f"Row stride {stride} is smaller than row size {row_bytes}")
        if len(data) != row_bytes * height:
            raise ValueError(f"Expected {row_bytes * height} bytes, got {len(data)}")

        padded = np.zeros((height, stride), dtype=np.uint8)
        padded[:, :row_bytes] = np.frombuffer(data, dtype=np.uint8).reshape(height, row_bytes)
        return padded.tobytes()

    async def read_buffer(self, buffer: 'wgpu.GPUBuffer') -> bytes:
        """
        Map ``buffer`` for reading and return its contents.

        Awaits wgpu's asynchronous map request; the buffer is unmapped
        before returning.

        Args:
            buffer: Buffer created with MAP_READ usage

        Returns:
            Buffer contents

        Raises:
            BufferMapError: If mapping fails or the context is closed
        """
        if self._closed:
            raise BufferMapError("Failed to receive buffer mapping result: context closed")

        try:
            await buffer.map_async(wgpu.MapMode.READ)
        except Exception as exc:
            raise BufferMapError(f"Failed to map buffer: {exc}") from exc

        try:
            return bytes(buffer.read_mapped())
        finally:
            buffer.unmap()

    def close(self) -> None:
        """Mark the context closed; later readbacks raise BufferMapError."""
        self._closed = True

    def __repr__(self) -> str:
        return (
            f"GpuContext(backend={self.backend_name}, "
            f"device={self.device_name})"
        )
