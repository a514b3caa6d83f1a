"""
Frame types for animated containers.

A FrameSequence is what the codec decodes a container into and what it
encodes back: an ordered list of frames sharing one canvas size, each
carrying its raw pixels and the per-frame attributes that control
animation timing and compositing.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Iterator, List, Optional

import numpy as np

from .errors import InvalidFrameSize


class DisposalMethod(IntEnum):
    """What a renderer does with a frame's area before drawing the next one."""
    NONE = 0
    DO_NOT_DISPOSE = 1
    RESTORE_BACKGROUND = 2
    RESTORE_PREVIOUS = 3

    @classmethod
    def from_wire(cls, value: int) -> 'DisposalMethod':
        """Map a GIF disposal field; reserved values (4-7) mean no action."""
        try:
            return cls(value)
        except ValueError:
            return cls.NONE


@dataclass
class Frame:
    """
    One frame of an animated container.

    Attributes:
        pixels: Raw pixels, RGB or RGBA, row-major, tightly packed
        width: Frame width in pixels
        height: Frame height in pixels
        delay: Display time in hundredths of a second
        disposal: Disposal method
        transparent_index: Palette index treated as transparent, if any
        interlaced: Whether the frame is stored interlaced
        needs_user_input: Whether the renderer waits for user input
        left: Horizontal offset on the canvas
        top: Vertical offset on the canvas
    """
    pixels: bytes
    width: int
    height: int
    delay: int = 0
    disposal: DisposalMethod = DisposalMethod.NONE
    transparent_index: Optional[int] = None
    interlaced: bool = False
    needs_user_input: bool = False
    left: int = 0
    top: int = 0

    def __post_init__(self):
        """Validate fields against the ranges the container can store."""
        for name in ('width', 'height', 'delay', 'left', 'top'):
            value = getattr(self, name)
            if not 0 <= value <= 0xFFFF:
                raise ValueError(f"Frame {name} out of range: {value}")
        if self.transparent_index is not None and not 0 <= self.transparent_index <= 0xFF:
            raise ValueError(f"Transparent index out of range: {self.transparent_index}")
        self.disposal = DisposalMethod(self.disposal)


@dataclass
class FrameSequence:
    """
    Ordered frames sharing one canvas size.

    Attributes:
        frames: Frames in display order
        width: Canvas width in pixels
        height: Canvas height in pixels
        loop_count: Animation repeat count (0 = forever, None = play once
            with no loop extension written)
    """
    frames: List[Frame] = field(default_factory=list)
    width: int = 0
    height: int = 0
    loop_count: Optional[int] = 0

    def __len__(self) -> int:
        return len(self.frames)

    def __iter__(self) -> Iterator[Frame]:
        return iter(self.frames)


def normalize_frame(frame: Frame, width: int, height: int) -> bytes:
    """
    Return the frame's pixels as RGBA8 for a ``width`` x ``height`` canvas.

    RGBA buffers pass through unchanged; RGB buffers get an opaque alpha
    byte after every triplet. Any other length is rejected; nothing is
    truncated or padded.

    Raises:
        InvalidFrameSize: If the buffer is neither width*height*4 nor
            width*height*3 bytes
    """
    pixels = frame.pixels
    rgba_len = width * height * 4
    rgb_len = width * height * 3

    if len(pixels) == rgba_len:
        return bytes(pixels)

    if len(pixels) == rgb_len:
        rgb = np.frombuffer(pixels, dtype=np.uint8).reshape(-1, 3)
        rgba = np.empty((rgb.shape[0], 4), dtype=np.uint8)
        rgba[:, :3] = rgb
        rgba[:, 3] = 255
        return rgba.tobytes()

    raise InvalidFrameSize(len(pixels), width, height)
