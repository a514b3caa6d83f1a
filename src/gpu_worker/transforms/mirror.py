"""
Vertical mirror transform.
"""

from ..gpu.pipeline import ShaderConfig
from ..shaders import MIRROR_SHADER
from .base import TextureTransform


class MirrorTransform(TextureTransform):
    """
    Flip an image upside down.

    The fragment shader samples the input at (u, 1 - v). Sample positions
    land on texel centers, so applying the mirror twice gives back the
    original image (within one step of 8-bit rounding).

    Example:
        mirror = MirrorTransform(gpu_ctx)
        flipped = await mirror.execute(rgba_bytes, width, height)
    """

    name = 'mirror'

    @classmethod
    def shader_config(cls) -> ShaderConfig:
        return ShaderConfig(
            label="Mirror",
            vertex_source=MIRROR_SHADER,
            fragment_source=MIRROR_SHADER,
        )

    async def execute(self, image: bytes, width: int, height: int) -> bytes:
        return await self.pipeline.execute(image, width, height)
