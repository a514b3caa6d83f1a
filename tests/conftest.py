"""
Shared fixtures.

GPU tests request the ``gpu_context`` fixture and are skipped on machines
without a WebGPU adapter.
"""

import io

import numpy as np
import pytest
import pytest_asyncio
from PIL import Image

from gpu_worker import GpuContext, GpuInitError


@pytest_asyncio.fixture
async def gpu_context():
    try:
        context = await GpuContext.create()
    except GpuInitError as e:
        pytest.skip(f"No WebGPU adapter available: {e}")
    yield context
    context.close()


def random_rgba(width, height, seed=0):
    """Random opaque RGBA8 pixels."""
    rng = np.random.default_rng(seed)
    pixels = rng.integers(0, 256, size=(height, width, 4), dtype=np.uint8)
    pixels[:, :, 3] = 255
    return pixels.tobytes()


def max_diff(a, b):
    """Largest per-channel difference between two RGBA8 buffers."""
    assert len(a) == len(b)
    diff = np.frombuffer(a, dtype=np.uint8).astype(int) - np.frombuffer(b, dtype=np.uint8).astype(int)
    return int(np.abs(diff).max())


def make_gif(colors, size=(4, 4), duration=100, loop=0):
    """Animated GIF with one solid-colour frame per entry in ``colors``."""
    frames = [Image.new("RGB", size, color) for color in colors]
    buffer = io.BytesIO()
    frames[0].save(
        buffer,
        format="GIF",
        save_all=True,
        append_images=frames[1:],
        duration=duration,
        loop=loop,
        disposal=1,
    )
    return buffer.getvalue()


def sub_rectangle_gif():
    """8x8 GIF whose second frame only covers a 2x2 block at (4, 4)."""
    first = Image.new("RGB", (8, 8), (0, 0, 0))
    second = first.copy()
    second.paste((255, 255, 255), (4, 4, 6, 6))
    buffer = io.BytesIO()
    first.save(buffer, format="GIF", save_all=True, append_images=[second], duration=50)
    return buffer.getvalue()


@pytest.fixture
def sample_gif():
    return make_gif([(255, 0, 0), (0, 255, 0), (0, 0, 255)])
