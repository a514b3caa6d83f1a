"""
Tests for the frame model and frame normalization.
"""

import pytest

from gpu_worker import DisposalMethod, Frame, FrameSequence, InvalidFrameSize, normalize_frame


class TestNormalizeFrame:
    """Test conversion of frame buffers to RGBA8."""

    def test_rgba_passes_through(self):
        pixels = bytes(range(16))
        frame = Frame(pixels=pixels, width=2, height=2)
        assert normalize_frame(frame, 2, 2) == pixels

    def test_rgb_gains_opaque_alpha(self):
        """Every RGB triplet is followed by an alpha byte of 255."""
        frame = Frame(pixels=bytes([10, 20, 30, 40, 50, 60]), width=2, height=1)

        rgba = normalize_frame(frame, 2, 1)

        assert rgba == bytes([10, 20, 30, 255, 40, 50, 60, 255])

    def test_output_length(self):
        frame = Frame(pixels=b"\x00" * (5 * 3 * 3), width=5, height=3)
        assert len(normalize_frame(frame, 5, 3)) == 5 * 3 * 4

    @pytest.mark.parametrize("length", [0, 1, 5, 11, 13, 17])
    def test_other_lengths_rejected(self, length):
        """Lengths other than w*h*3 and w*h*4 are never truncated or padded."""
        frame = Frame(pixels=b"\x00" * length, width=2, height=2)
        with pytest.raises(InvalidFrameSize) as info:
            normalize_frame(frame, 2, 2)
        assert info.value.actual == length
        assert "16" in str(info.value) and "12" in str(info.value)


class TestFrame:
    """Test frame field validation."""

    def test_defaults(self):
        frame = Frame(pixels=b"", width=0, height=0)
        assert frame.delay == 0
        assert frame.disposal is DisposalMethod.NONE
        assert frame.transparent_index is None
        assert not frame.interlaced
        assert not frame.needs_user_input
        assert (frame.left, frame.top) == (0, 0)

    def test_disposal_coerced(self):
        frame = Frame(pixels=b"", width=0, height=0, disposal=2)
        assert frame.disposal is DisposalMethod.RESTORE_BACKGROUND

    def test_delay_out_of_range(self):
        with pytest.raises(ValueError):
            Frame(pixels=b"", width=1, height=1, delay=70000)

    def test_transparent_index_out_of_range(self):
        with pytest.raises(ValueError):
            Frame(pixels=b"", width=1, height=1, transparent_index=256)

    def test_reserved_disposal_maps_to_none(self):
        assert DisposalMethod.from_wire(3) is DisposalMethod.RESTORE_PREVIOUS
        assert DisposalMethod.from_wire(5) is DisposalMethod.NONE


def test_sequence_iteration():
    frames = [Frame(pixels=b"", width=0, height=0, delay=d) for d in (3, 4, 5)]
    sequence = FrameSequence(frames=frames, width=0, height=0)

    assert len(sequence) == 3
    assert [f.delay for f in sequence] == [3, 4, 5]
    assert sequence.loop_count == 0
