"""Tests for envelope wrapping, reply unwrapping and stream reassembly."""

from nxt_mcp.protocol.commands import build_play_tone
from nxt_mcp.protocol.framing import Frame, FrameAssembler, Framer


def test_direct_wrap_is_identity():
    framer = Framer(length_prefixed=False)
    command = build_play_tone(440, 1000)
    assert framer.wrap(command) == command
    assert framer.shift == 0


def test_length_prefixed_wrap():
    """Exactly two little-endian length bytes are prepended."""
    framer = Framer(length_prefixed=True)
    command = build_play_tone(440, 1000)
    wrapped = framer.wrap(command)
    assert framer.shift == 2
    assert wrapped[:2] == bytes([0x06, 0x00])
    assert wrapped[2:] == command


def test_length_prefix_counts_long_commands():
    framer = Framer(length_prefixed=True)
    wrapped = framer.wrap(bytes(300))
    assert wrapped[:2] == (300).to_bytes(2, "little")


def test_unwrap_direct():
    framer = Framer(length_prefixed=False)
    frame = framer.unwrap(bytes([0x02, 0x0B, 0x00, 0x40, 0x1F]))
    assert frame == Frame(type=0x02, opcode=0x0B, status=0x00, payload=b"\x40\x1f")


def test_unwrap_applies_shift():
    framer = Framer(length_prefixed=True)
    frame = framer.unwrap(bytes([0x05, 0x00, 0x02, 0x0B, 0x00, 0x40, 0x1F]))
    assert frame.opcode == 0x0B
    assert frame.status == 0x00
    assert frame.payload == b"\x40\x1f"


def test_unwrap_too_short():
    assert Framer(length_prefixed=True).unwrap(bytes([0x01, 0x00, 0x02, 0x0B])) is None
    assert Framer(length_prefixed=False).unwrap(bytes([0x02])) is None


def test_opcode_of():
    assert Framer(length_prefixed=False).opcode_of(bytes([0x02, 0x88, 0x00])) == 0x88
    assert Framer(length_prefixed=True).opcode_of(bytes([0x03, 0x00, 0x02, 0x88, 0x00])) == 0x88
    assert Framer(length_prefixed=True).opcode_of(bytes([0x03, 0x00])) is None


def test_assembler_whole_telegram():
    telegram = bytes([0x03, 0x00, 0x02, 0x03, 0x00])
    assert FrameAssembler().feed(telegram) == [telegram]


def test_assembler_split_and_merged_chunks():
    first = bytes([0x03, 0x00, 0x02, 0x03, 0x00])
    second = bytes([0x05, 0x00, 0x02, 0x0B, 0x00, 0x40, 0x1F])
    stream = first + second
    assembler = FrameAssembler()

    frames = []
    for i in range(0, len(stream), 4):
        frames += assembler.feed(stream[i : i + 4])

    assert frames == [first, second]
    assert assembler.buffered == 0


def test_assembler_keeps_partial_data():
    assembler = FrameAssembler()
    assert assembler.feed(bytes([0x05, 0x00, 0x02])) == []
    assert assembler.buffered == 3
    assembler.reset()
    assert assembler.buffered == 0


def test_assembler_resyncs_after_bad_length():
    telegram = bytes([0x03, 0x00, 0x02, 0x03, 0x00])
    assert FrameAssembler().feed(bytes([0xFF, 0xFF]) + telegram) == [telegram]


def test_frame_repr():
    r = repr(Frame(type=0x02, opcode=0x0B, status=0x87, payload=b""))
    assert "0x0B" in r
    assert "0x87" in r
