"""
GPU tests for the texture transform pipeline and the mirror transform.

Skipped when no WebGPU adapter is available.
"""

import asyncio

import numpy as np
import pytest

from gpu_worker import BufferMapError, InvalidFrameSize, MirrorTransform, ShaderConfig, TextureTransformPipeline
from gpu_worker.shaders import PASSTHROUGH_SHADER

from conftest import max_diff, random_rgba

pytestmark = pytest.mark.gpu

WHITE = bytes([255, 255, 255, 255])
BLACK = bytes([0, 0, 0, 255])


def passthrough(context):
    return TextureTransformPipeline(context, ShaderConfig(
        label="Passthrough",
        vertex_source=PASSTHROUGH_SHADER,
        fragment_source=PASSTHROUGH_SHADER,
    ))


class TestPipeline:
    """Test TextureTransformPipeline.execute."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("width,height", [(1, 1), (3, 2), (63, 5), (64, 4), (65, 3), (100, 7)])
    async def test_output_length(self, gpu_context, width, height):
        """Output is always tightly packed, whatever the row alignment."""
        out = await passthrough(gpu_context).execute(random_rgba(width, height), width, height)
        assert len(out) == width * height * 4

    @pytest.mark.asyncio
    @pytest.mark.parametrize("width,height", [(1, 1), (5, 3), (65, 2), (130, 4)])
    async def test_passthrough_preserves_pixels(self, gpu_context, width, height):
        image = random_rgba(width, height, seed=width)
        out = await passthrough(gpu_context).execute(image, width, height)
        assert max_diff(out, image) <= 1

    @pytest.mark.asyncio
    async def test_wrong_input_size(self, gpu_context):
        with pytest.raises(InvalidFrameSize):
            await passthrough(gpu_context).execute(b"\x00" * 15, 2, 2)

    @pytest.mark.asyncio
    async def test_zero_dimensions(self, gpu_context):
        with pytest.raises(ValueError):
            await passthrough(gpu_context).execute(b"", 0, 4)

    @pytest.mark.asyncio
    async def test_unexpected_uniforms(self, gpu_context):
        with pytest.raises(ValueError):
            await passthrough(gpu_context).execute(WHITE, 1, 1, uniforms=b"\x00" * 16)


class TestMirror:
    """Test the vertical mirror."""

    @pytest.mark.asyncio
    async def test_single_pixel(self, gpu_context):
        mirror = MirrorTransform(gpu_context)
        assert await mirror.execute(WHITE, 1, 1) == WHITE

    @pytest.mark.asyncio
    async def test_swaps_rows(self, gpu_context):
        mirror = MirrorTransform(gpu_context)
        out = await mirror.execute(WHITE + BLACK, 1, 2)
        assert max_diff(out, BLACK + WHITE) <= 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("width,height", [(4, 4), (7, 3), (65, 9)])
    async def test_matches_cpu_flip(self, gpu_context, width, height):
        image = random_rgba(width, height, seed=height)
        expected = np.flipud(np.frombuffer(image, dtype=np.uint8).reshape(height, width, 4))

        out = await MirrorTransform(gpu_context).execute(image, width, height)

        result = np.frombuffer(out, dtype=np.uint8).reshape(height, width, 4)
        assert np.abs(result.astype(int) - expected.astype(int)).max() <= 1

    @pytest.mark.asyncio
    async def test_involution(self, gpu_context):
        """Mirroring twice gives back the input."""
        width, height = 17, 11
        image = random_rgba(width, height, seed=3)
        mirror = MirrorTransform(gpu_context)

        twice = await mirror.execute(await mirror.execute(image, width, height), width, height)

        assert max_diff(twice, image) <= 1

    @pytest.mark.asyncio
    async def test_concurrent_invocations(self, gpu_context):
        """Concurrent calls on one device match sequential calls."""
        width, height = 33, 9
        mirror = MirrorTransform(gpu_context)
        images = [random_rgba(width, height, seed=i) for i in range(8)]

        sequential = [await mirror.execute(image, width, height) for image in images]
        concurrent = await asyncio.gather(*(mirror.execute(image, width, height) for image in images))

        assert list(concurrent) == sequential


class TestContext:
    """Test GpuContext lifetime."""

    @pytest.mark.asyncio
    async def test_descriptive_properties(self, gpu_context):
        assert isinstance(gpu_context.device_name, str)
        assert isinstance(gpu_context.backend_name, str)
        assert gpu_context.limits

    @pytest.mark.asyncio
    async def test_scope_releases_resources(self, gpu_context):
        with gpu_context.scope("test") as scope:
            scope.create_texture(4, 4, 0x04 | 0x02)
            assert len(scope) == 1
        assert len(scope) == 1

    @pytest.mark.asyncio
    async def test_readback_after_close(self, gpu_context):
        """A closed context refuses to map buffers."""
        mirror = MirrorTransform(gpu_context)
        gpu_context.close()

        assert gpu_context.closed
        with pytest.raises(BufferMapError):
            await mirror.execute(random_rgba(4, 4), 4, 4)
