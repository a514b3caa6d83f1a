"""
WebGPU backend implementation.

Provides unified GPU access using WebGPU, which automatically selects
the best native backend per platform:
- macOS: Metal
- Windows: Direct3D 12
- Linux: Vulkan
"""

import logging
import sys
from typing import Any, Dict, Optional

from ...errors import GpuInitError

try:
    import wgpu
    HAS_WGPU = True
except ImportError:
    HAS_WGPU = False
    wgpu = None


logger = logging.getLogger(__name__)


class WebGPUBackend:
    """
    WebGPU backend holding the adapter, device and queue.

    The device and queue are created once and shared read-only by every
    pipeline and invocation for the lifetime of the process.

    Example:
        backend = await WebGPUBackend.create()
        print(f"Using {backend.backend_name} on {backend.adapter_info['description']}")
    """

    def __init__(
        self,
        adapter: 'wgpu.GPUAdapter',
        device: 'wgpu.GPUDevice',
        queue: 'wgpu.GPUQueue'
    ):
        """
        Initialize WebGPU backend (use create() instead).

        Args:
            adapter: WebGPU adapter
            device: WebGPU device
            queue: WebGPU command queue
        """
        self.adapter = adapter
        self.device = device
        self.queue = queue

        self._adapter_info: Optional[Dict[str, Any]] = None

    @classmethod
    async def create(
        cls,
        power_preference: str = 'high-performance'
    ) -> 'WebGPUBackend':
        """
        Create WebGPU backend (async).

        Args:
            power_preference: 'high-performance' or 'low-power'

        Returns:
            WebGPUBackend instance

        Raises:
            GpuInitError: If WebGPU is not available, no adapter is found
                or the device request is refused
        """
        if not HAS_WGPU:
            raise GpuInitError(
                "WebGPU not available. Install with: pip install wgpu"
            )

        try:
            adapter = await wgpu.gpu.request_adapter_async(
                power_preference=power_preference
            )
        except Exception as e:
            raise GpuInitError(f"Failed to find an appropriate adapter: {e}") from e

        if adapter is None:
            raise GpuInitError("Failed to find an appropriate adapter")

        try:
            device = await adapter.request_device_async(
                label="GPU Worker Device",
                required_features=[],
                required_limits={},
            )
        except Exception as e:
            raise GpuInitError(f"Failed to request device: {e}") from e

        if device is None:
            raise GpuInitError("Failed to request device")

        backend = cls(adapter=adapter, device=device, queue=device.queue)
        logger.info("WebGPU device ready: %r", backend)
        return backend

    @property
    def adapter_info(self) -> Dict[str, Any]:
        """
        Get adapter information.

        Returns:
            Dictionary with adapter details:
            - description: GPU name (e.g., "Apple M1 Pro")
            - backend_type: Backend type (e.g., "Metal", "D3D12", "Vulkan")
        """
        if self._adapter_info is None:
            info = dict(getattr(self.adapter, 'info', None) or {})
            description = info.get('description') or info.get('device') or 'Unknown GPU'

            self._adapter_info = {
                'description': description,
                'backend_type': info.get('backend_type') or self.backend_name,
            }

        return self._adapter_info

    @property
    def backend_name(self) -> str:
        """
        Get backend name.

        Returns:
            'Metal' (macOS), 'D3D12' (Windows), or 'Vulkan' (Linux)
        """
        if sys.platform == 'darwin':
            return 'Metal'
        elif sys.platform == 'win32':
            return 'D3D12'
        else:
            return 'Vulkan'

    @property
    def limits(self) -> Dict[str, int]:
        """Device limits as reported by the driver."""
        return dict(self.device.limits)

    def __repr__(self) -> str:
        info = self.adapter_info
        return (
            f"WebGPUBackend(backend={info.get('backend_type')}, "
            f"device={info.get('description', 'Unknown')})"
        )
