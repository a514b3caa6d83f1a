"""
Base class for GPU texture transforms.
"""

from abc import ABC, abstractmethod
from typing import ClassVar

from ..gpu.context import GpuContext
from ..gpu.pipeline import ShaderConfig, TextureTransformPipeline


class TextureTransform(ABC):
    """
    A named transform backed by one TextureTransformPipeline.

    The GPU context is injected rather than looked up globally, so any
    number of transforms can share one device. The pipeline is compiled
    once in the constructor and reused by every call to execute().

    Subclasses provide ``name`` and ``shader_config()`` and implement
    ``execute()``.
    """

    name: ClassVar[str] = 'transform'

    def __init__(self, context: GpuContext):
        self.context = context
        self.pipeline = TextureTransformPipeline(context, self.shader_config())

    @classmethod
    @abstractmethod
    def shader_config(cls) -> ShaderConfig:
        """Shader sources and uniform layout of this transform."""

    @abstractmethod
    async def execute(self, image: bytes, width: int, height: int) -> bytes:
        """
        Transform one RGBA8 image.

        Returns exactly ``width * height * 4`` bytes.
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}(context={self.context!r})"
