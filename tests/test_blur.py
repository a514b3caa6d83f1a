"""
Tests for the blur transform.

Parameter packing runs anywhere; the shader tests need a WebGPU adapter.
"""

import numpy as np
import pytest

from gpu_worker import BlurTransform, create_transform
from gpu_worker.transforms import MAX_BLUR_RADIUS, blur_params

from conftest import max_diff, random_rgba


def checkerboard(width, height):
    y, x = np.mgrid[0:height, 0:width]
    pixels = np.zeros((height, width, 4), dtype=np.uint8)
    pixels[(x + y) % 2 == 0, :3] = 255
    pixels[:, :, 3] = 255
    return pixels.tobytes()


def variance(data):
    return float(np.frombuffer(data, dtype=np.uint8).reshape(-1, 4)[:, :3].astype(float).var())


class TestBlurParams:
    """Test the uniform block."""

    def test_layout(self):
        radius, sigma, pad0, pad1 = np.frombuffer(blur_params(4.0), dtype=np.float32)
        assert (radius, sigma, pad0, pad1) == (4.0, 2.0, 0.0, 0.0)

    def test_clamped(self):
        radius = np.frombuffer(blur_params(1000.0), dtype=np.float32)[0]
        assert radius == MAX_BLUR_RADIUS

    @pytest.mark.parametrize("radius", [-1.0, float("nan"), float("inf")])
    def test_invalid_radius(self, radius):
        with pytest.raises(ValueError):
            blur_params(radius)


@pytest.mark.gpu
class TestBlur:
    """Test the blur shader."""

    @pytest.mark.asyncio
    async def test_radius_zero_is_identity(self, gpu_context):
        image = random_rgba(13, 7)
        blur = BlurTransform(gpu_context, radius=0.0)
        out = await blur.execute(image, 13, 7)
        assert max_diff(out, image) <= 1

    @pytest.mark.asyncio
    async def test_larger_radius_smooths_more(self, gpu_context):
        image = checkerboard(32, 32)
        blur = create_transform('blur', gpu_context)

        variances = [variance(await blur.execute(image, 32, 32, radius=r)) for r in (0.0, 1.0, 2.0, 4.0)]

        assert variances[0] > variances[1]
        assert all(a >= b for a, b in zip(variances, variances[1:]))

    @pytest.mark.asyncio
    async def test_uniform_image_unchanged(self, gpu_context):
        image = bytes([90, 120, 200, 255]) * (10 * 6)
        out = await BlurTransform(gpu_context).execute(image, 10, 6, radius=3.0)
        assert max_diff(out, image) <= 1

    @pytest.mark.asyncio
    async def test_output_length(self, gpu_context):
        out = await BlurTransform(gpu_context, radius=2.0).execute(random_rgba(65, 3), 65, 3)
        assert len(out) == 65 * 3 * 4

    @pytest.mark.asyncio
    async def test_negative_radius(self, gpu_context):
        blur = BlurTransform(gpu_context)
        with pytest.raises(ValueError):
            await blur.execute(random_rgba(2, 2), 2, 2, radius=-1.0)
