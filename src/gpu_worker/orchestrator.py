"""
Decode, transform and re-encode frame sequences.

The orchestrator owns no GPU state: it drives a TextureTransform over
every frame of a decoded container, one frame at a time, and encodes the
result only after all frames succeeded.

Example:
    orchestrator = TransformOrchestrator()
    out = await orchestrator.run(gif_bytes, blur, radius=4.0)
"""

import dataclasses
import io
import logging
from typing import Optional

from PIL import Image

from .codec import GifCodec
from .errors import DecodeError, EncodeError
from .frames import FrameSequence, normalize_frame
from .transforms.base import TextureTransform

logger = logging.getLogger(__name__)


class TransformOrchestrator:
    """Apply a transform to every frame of an animated GIF."""

    def __init__(self, codec: Optional[GifCodec] = None):
        self.codec = codec or GifCodec()

    async def transform_sequence(
        self,
        sequence: FrameSequence,
        transform: TextureTransform,
        **options
    ) -> FrameSequence:
        """
        Transform every frame of a decoded sequence.

        Frames are processed strictly in order, each awaited before the
        next starts. The first failure propagates and no partial sequence
        is returned. Every output frame keeps its input frame's metadata.
        """
        width, height = sequence.width, sequence.height
        total = len(sequence)
        frames = []

        for index, frame in enumerate(sequence.frames, start=1):
            logger.debug("Processing frame %d/%d", index, total)
            rgba = normalize_frame(frame, width, height)
            pixels = await transform.execute(rgba, width, height, **options)
            frames.append(dataclasses.replace(frame, pixels=pixels, width=width, height=height))

        return dataclasses.replace(sequence, frames=frames)

    async def run(self, data: bytes, transform: TextureTransform, **options) -> bytes:
        """
        Decode ``data``, transform every frame, encode the result.

        Args:
            data: GIF bytes
            transform: Transform applied to each frame
            **options: Forwarded to ``transform.execute`` (e.g. radius)

        Returns:
            GIF bytes with the same frame count, timing and metadata

        Raises:
            DecodeError, InvalidFrameSize, EncodeError, GpuError
        """
        sequence = self.codec.decode(data)
        logger.info(
            "Decoded %d frames from GIF (%dx%d)", len(sequence), sequence.width, sequence.height
        )

        transformed = await self.transform_sequence(sequence, transform, **options)
        return self.codec.encode(transformed)


async def transform_image(
    data: bytes,
    transform: TextureTransform,
    format: Optional[str] = None,
    **options
) -> bytes:
    """
    Transform a single still image (PNG, JPEG, ...).

    Args:
        data: Encoded image bytes
        transform: Transform to apply
        format: Output format for Pillow (default: the input's format)
        **options: Forwarded to ``transform.execute``

    Returns:
        Encoded image bytes
    """
    try:
        with Image.open(io.BytesIO(data)) as image:
            out_format = format or image.format or "PNG"
            rgba = image.convert("RGBA")
    except (OSError, ValueError, SyntaxError) as e:
        raise DecodeError(f"Failed to decode image: {e}") from e

    width, height = rgba.size
    pixels = await transform.execute(rgba.tobytes(), width, height, **options)
    result = Image.frombytes("RGBA", (width, height), pixels)

    # JPEG and friends have no alpha channel
    if out_format.upper() in ("JPEG", "JPG", "BMP"):
        result = result.convert("RGB")

    buffer = io.BytesIO()
    try:
        result.save(buffer, format=out_format)
    except (OSError, ValueError, KeyError) as e:
        raise EncodeError(f"Failed to encode {out_format} image: {e}") from e
    return buffer.getvalue()
