"""
GPU blur transform.

Gaussian blur with a per-invocation radius passed to the shader through
a uniform buffer.
"""

import math
from typing import Optional

import numpy as np

from ..gpu.context import GpuContext
from ..gpu.pipeline import ShaderConfig
from ..shaders import BLUR_PARAMS_SIZE, GAUSSIAN_BLUR_SHADER
from .base import TextureTransform

# Larger radii are clamped; the single-pass kernel costs (2r + 1)^2 samples per pixel
MAX_BLUR_RADIUS = 16.0

DEFAULT_BLUR_RADIUS = 5.0


def blur_params(radius: float) -> bytes:
    """
    Pack the BlurParams uniform block for ``radius``.

    Args:
        radius: Blur radius in pixels (clamped to MAX_BLUR_RADIUS)

    Returns:
        16 bytes: radius, sigma and two padding floats

    Raises:
        ValueError: If radius is negative or not finite
    """
    if not math.isfinite(radius) or radius < 0:
        raise ValueError(f"Blur radius must be a non-negative number, got {radius}")

    radius = min(float(radius), MAX_BLUR_RADIUS)
    sigma = max(radius / 2.0, 1e-3)
    return np.array([radius, sigma, 0.0, 0.0], dtype=np.float32).tobytes()


class BlurTransform(TextureTransform):
    """
    Gaussian blur over a circular footprint.

    Kernel: every pixel within ``radius`` of the output pixel contributes
    with weight exp(-d^2 / (2 sigma^2)), sigma = radius / 2, in a single
    pass. Radius 0 returns the input unchanged; a larger radius never
    smooths less.

    Example:
        blur = BlurTransform(gpu_ctx, radius=3.0)
        blurred = await blur.execute(rgba_bytes, width, height)
        softer = await blur.execute(rgba_bytes, width, height, radius=8.0)
    """

    name = 'blur'

    def __init__(self, context: GpuContext, radius: float = DEFAULT_BLUR_RADIUS):
        """
        Args:
            context: Shared GPU context
            radius: Default radius used when execute() gets none
        """
        self._default_params = blur_params(radius)
        self.radius = radius
        super().__init__(context)

    @classmethod
    def shader_config(cls) -> ShaderConfig:
        return ShaderConfig(
            label="Blur",
            vertex_source=GAUSSIAN_BLUR_SHADER,
            fragment_source=GAUSSIAN_BLUR_SHADER,
            uniform_size=BLUR_PARAMS_SIZE,
        )

    async def execute(
        self,
        image: bytes,
        width: int,
        height: int,
        radius: Optional[float] = None
    ) -> bytes:
        """
        Blur one RGBA8 image.

        Args:
            image: RGBA8 pixels
            width: Image width in pixels
            height: Image height in pixels
            radius: Radius for this call (default: the constructor's)
        """
        params = self._default_params if radius is None else blur_params(radius)
        return await self.pipeline.execute(image, width, height, uniforms=params)

    def __repr__(self) -> str:
        return f"BlurTransform(radius={self.radius})"
