"""
GIF frame sequence codec.

Every frame is decoded on its own: its image block is rewrapped as a
single-frame GIF the size of the frame's rectangle and handed to Pillow,
so frame buffers hold exactly that rectangle (RGB, or RGBA when the frame
has a transparent index). Frames are never composited onto the canvas.
Pillow also quantises colours and runs the LZW encoder. The per-frame
control fields (delay, disposal, transparency, user input flag, offsets,
interlace) and the loop count are read from and written to the GIF block
structure directly, so they survive a decode/encode cycle unchanged.

Example:
    codec = GifCodec()
    sequence = codec.decode(gif_bytes)
    for frame in sequence:
        rgba = normalize_frame(frame, sequence.width, sequence.height)
        ...
    out = codec.encode(sequence)
"""

import io
import logging
import struct
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np
from PIL import Image

from .errors import DecodeError, EncodeError
from .frames import DisposalMethod, Frame, FrameSequence, normalize_frame

logger = logging.getLogger(__name__)

GIF_HEADER = b"GIF89a"
TRAILER = 0x3B
EXTENSION_INTRODUCER = 0x21
IMAGE_SEPARATOR = 0x2C
GRAPHIC_CONTROL_LABEL = 0xF9
APPLICATION_LABEL = 0xFF
LOOP_APPLICATIONS = (b"NETSCAPE2.0", b"ANIMEXTS1.0")

# LZW minimum code size for 8-bit local colour tables
LZW_MIN_CODE_SIZE = 8

# Alpha below this maps to the transparent palette index
ALPHA_THRESHOLD = 128


@dataclass
class _FrameControl:
    """Per-frame fields and raw blocks read from the block structure."""
    left: int
    top: int
    width: int
    height: int
    flags: int
    image_data: bytes
    delay: int = 0
    disposal: DisposalMethod = DisposalMethod.NONE
    transparent_index: Optional[int] = None
    needs_user_input: bool = False
    graphic_control: bytes = b""

    @property
    def interlaced(self) -> bool:
        return bool(self.flags & 0x40)


@dataclass
class _GifStructure:
    """Logical screen and frames of a GIF."""
    width: int
    height: int
    screen_flags: int
    background: int
    global_table: bytes
    loop_count: Optional[int] = None
    frames: List[_FrameControl] = field(default_factory=list)


def _color_table_size(packed: int) -> int:
    return 3 * (2 << (packed & 0x07))


def _skip_sub_blocks(data: bytes, pos: int) -> int:
    while True:
        size = data[pos]
        pos += 1
        if size == 0:
            return pos
        pos += size


def _scan_blocks(data: bytes) -> _GifStructure:
    """
    Walk the GIF block structure.

    A block cut short by the end of the data is an error; a missing
    trailer is not.
    """
    if len(data) < 13 or data[:3] != b"GIF":
        raise DecodeError("Not a GIF file")

    width, height, packed, background = struct.unpack_from("<HHBB", data, 6)
    pos = 13
    global_table = b""
    if packed & 0x80:
        global_table = data[pos:pos + _color_table_size(packed)]
        pos += len(global_table)

    structure = _GifStructure(
        width=width, height=height, screen_flags=packed,
        background=background, global_table=global_table,
    )
    pending = None

    try:
        while pos < len(data):
            block = data[pos]

            if block == TRAILER:
                break

            if block == EXTENSION_INTRODUCER:
                start = pos
                label = data[pos + 1]
                pos += 2
                if label == GRAPHIC_CONTROL_LABEL:
                    size = data[pos]
                    pos = _skip_sub_blocks(data, pos)
                    if size >= 4:
                        flags, delay, index = struct.unpack_from("<BHB", data, start + 3)
                        pending = {
                            'delay': delay,
                            'disposal': DisposalMethod.from_wire((flags >> 2) & 0x07),
                            'needs_user_input': bool(flags & 0x02),
                            'transparent_index': index if flags & 0x01 else None,
                            'graphic_control': data[start:pos],
                        }
                    continue
                if label == APPLICATION_LABEL:
                    size = data[pos]
                    app = data[pos + 1:pos + 1 + size]
                    pos += 1 + size
                    if app in LOOP_APPLICATIONS and data[pos] >= 3 and data[pos + 1] == 1:
                        structure.loop_count = struct.unpack_from("<H", data, pos + 2)[0]
                pos = _skip_sub_blocks(data, pos)

            elif block == IMAGE_SEPARATOR:
                left, top, w, h, flags = struct.unpack_from("<HHHHB", data, pos + 1)
                pos += 10
                start = pos
                if flags & 0x80:
                    pos += _color_table_size(flags)
                # LZW minimum code size, then the image data sub-blocks
                pos = _skip_sub_blocks(data, pos + 1)
                structure.frames.append(_FrameControl(
                    left=left, top=top, width=w, height=h, flags=flags,
                    image_data=data[start:pos],
                    **(pending or {}),
                ))
                pending = None

            else:
                # Stray byte between blocks
                pos += 1

    except (IndexError, struct.error) as e:
        raise DecodeError(f"Truncated GIF data at offset {pos}") from e

    return structure


def _single_frame_gif(structure: _GifStructure, control: _FrameControl) -> bytes:
    """Rewrap one frame as a standalone GIF whose screen is the frame's rectangle."""
    out = bytearray(GIF_HEADER)
    out += struct.pack(
        "<HHBBB", control.width, control.height,
        structure.screen_flags, structure.background, 0,
    )
    out += structure.global_table
    out += control.graphic_control
    out.append(IMAGE_SEPARATOR)
    out += struct.pack("<HHHHB", 0, 0, control.width, control.height, control.flags)
    out += control.image_data
    out.append(TRAILER)
    return bytes(out)


def _has_alpha(image: Image.Image) -> bool:
    return image.mode in ("RGBA", "LA", "PA") or "transparency" in image.info


def _decode_frame(structure: _GifStructure, control: _FrameControl) -> bytes:
    with Image.open(io.BytesIO(_single_frame_gif(structure, control))) as image:
        mode = "RGBA" if _has_alpha(image) else "RGB"
        decoded = image.convert(mode)

    if decoded.size != (control.width, control.height):
        raise DecodeError(
            f"Frame decoded to {decoded.width}x{decoded.height}, "
            f"expected {control.width}x{control.height}"
        )
    return decoded.tobytes()


def _quantize(rgba: np.ndarray, transparent_index: Optional[int]) -> Tuple[np.ndarray, np.ndarray]:
    """
    Reduce an RGBA frame to palette indices and an RGB palette.

    With a transparent index, quantisation leaves one slot free, existing
    indices at or above it shift up by one, and pixels with alpha below
    ALPHA_THRESHOLD take the transparent index.
    """
    colors = 256 if transparent_index is None else 255
    rgb = Image.fromarray(np.ascontiguousarray(rgba[:, :, :3]))
    quantized = rgb.quantize(colors=colors, method=Image.Quantize.MEDIANCUT)

    indices = np.asarray(quantized, dtype=np.uint8).copy()
    used = int(indices.max()) + 1
    palette = np.zeros((used, 3), dtype=np.uint8)
    raw = np.frombuffer(bytes(quantized.getpalette() or []), dtype=np.uint8)
    available = min(used, raw.size // 3)
    palette[:available] = raw[:available * 3].reshape(-1, 3)

    if transparent_index is not None:
        if transparent_index < used:
            indices = np.where(indices >= transparent_index, indices + 1, indices).astype(np.uint8)
            palette = np.insert(palette, transparent_index, 0, axis=0)
        else:
            palette = np.concatenate(
                [palette, np.zeros((transparent_index + 1 - used, 3), dtype=np.uint8)]
            )
        indices[rgba[:, :, 3] < ALPHA_THRESHOLD] = transparent_index

    return indices, palette


def _color_table(palette: np.ndarray) -> Tuple[bytes, int]:
    """Pad a palette to a power of two; returns (table bytes, size field)."""
    bits = max(1, int(len(palette) - 1).bit_length())
    size = 1 << bits
    table = np.zeros((size, 3), dtype=np.uint8)
    table[:len(palette)] = palette
    return table.tobytes(), bits - 1


class GifCodec:
    """
    Decode GIFs into FrameSequences and encode them back.

    Each decoded frame holds its own rectangle and keeps the original
    frame's control fields. Frames that cover only part of the canvas
    therefore fail normalization to the canvas size with
    InvalidFrameSize. Encoding writes every frame at canvas size at its
    original offset.
    """

    def decode(self, data: bytes) -> FrameSequence:
        """
        Decode GIF bytes.

        Raises:
            DecodeError: Malformed data, a zero-sized canvas or no frames
        """
        structure = _scan_blocks(data)
        width, height = structure.width, structure.height

        if width == 0 or height == 0:
            raise DecodeError(f"Invalid canvas size {width}x{height}")
        if not structure.frames:
            raise DecodeError("GIF contains no frames")

        frames = []
        for index, control in enumerate(structure.frames):
            try:
                pixels = _decode_frame(structure, control)
            except DecodeError:
                raise
            except (OSError, EOFError, ValueError, SyntaxError, struct.error) as e:
                raise DecodeError(f"Failed to decode GIF frame {index}: {e}") from e

            frames.append(Frame(
                pixels=pixels,
                width=control.width,
                height=control.height,
                delay=control.delay,
                disposal=control.disposal,
                transparent_index=control.transparent_index,
                interlaced=control.interlaced,
                needs_user_input=control.needs_user_input,
                left=control.left,
                top=control.top,
            ))

        logger.debug(
            "Decoded GIF: %d frames, %dx%d, loop=%s", len(frames), width, height, structure.loop_count
        )
        return FrameSequence(frames=frames, width=width, height=height, loop_count=structure.loop_count)

    def encode(self, sequence: FrameSequence) -> bytes:
        """
        Encode a FrameSequence to GIF bytes.

        Frame pixels may be RGB or RGBA at the canvas size.

        Raises:
            EncodeError: Empty sequence or encoder failure
            InvalidFrameSize: A frame buffer doesn't match the canvas
        """
        if not sequence.frames:
            raise EncodeError("Cannot encode an empty frame sequence")

        width, height = sequence.width, sequence.height
        out = bytearray(GIF_HEADER)
        # Logical screen descriptor: no global colour table
        out += struct.pack("<HHBBB", width, height, 0, 0, 0)

        if sequence.loop_count is not None:
            out += bytes([EXTENSION_INTRODUCER, APPLICATION_LABEL, 11]) + b"NETSCAPE2.0"
            out += struct.pack("<BBHB", 3, 1, sequence.loop_count, 0)

        for index, frame in enumerate(sequence.frames):
            try:
                out += self._encode_frame(frame, width, height)
            except (ValueError, OSError, RuntimeError) as e:
                raise EncodeError(f"Failed to encode frame {index}: {e}") from e

        out.append(TRAILER)
        return bytes(out)

    def _encode_frame(self, frame: Frame, width: int, height: int) -> bytes:
        rgba = np.frombuffer(normalize_frame(frame, width, height), dtype=np.uint8)
        rgba = rgba.reshape(height, width, 4)

        indices, palette = _quantize(rgba, frame.transparent_index)
        table, size_bits = _color_table(palette)

        flags = (int(frame.disposal) & 0x07) << 2
        if frame.needs_user_input:
            flags |= 0x02
        if frame.transparent_index is not None:
            flags |= 0x01

        out = bytearray()
        out += struct.pack(
            "<BBBBHBB",
            EXTENSION_INTRODUCER, GRAPHIC_CONTROL_LABEL, 4,
            flags, frame.delay, frame.transparent_index or 0, 0,
        )

        descriptor_flags = 0x80 | size_bits
        if frame.interlaced:
            descriptor_flags |= 0x40
        out += struct.pack(
            "<BHHHHB", IMAGE_SEPARATOR, frame.left, frame.top, width, height, descriptor_flags
        )
        out += table

        indexed = Image.frombytes("P", (width, height), indices.tobytes())
        out.append(LZW_MIN_CODE_SIZE)
        out += indexed.tobytes("gif", "P", LZW_MIN_CODE_SIZE, int(frame.interlaced))
        out.append(0)
        return bytes(out)


__all__ = ['GifCodec', 'normalize_frame']
