import struct

import pytest

from foxmq.mqtt5.codec import (
    MAX_REMAINING_LENGTH,
    FixedHeader,
    InsufficientBytes,
    PacketType,
    ProtocolError,
    Reader,
    check,
    check_reserved_flags,
    decode_length,
    encode_bytes,
    encode_length,
    encode_string,
    length_of_length,
    parse_fixed_header,
)

LENGTHS = [0, 1, 127, 128, 16_383, 16_384, 2_097_151, 2_097_152, MAX_REMAINING_LENGTH]


@pytest.mark.parametrize("length", LENGTHS)
def test_length_round_trip(length):
    encoded = encode_length(length)
    assert decode_length(encoded) == (len(encoded), length)
    assert length_of_length(length) == len(encoded)


def test_zero_length_is_one_byte():
    assert encode_length(0) == b"\x00"


def test_length_too_large():
    with pytest.raises(ProtocolError) as info:
        encode_length(MAX_REMAINING_LENGTH + 1)
    assert info.value.kind == "payload_too_long"


def test_length_with_five_bytes_is_malformed():
    with pytest.raises(ProtocolError) as info:
        decode_length(b"\xff\xff\xff\xff\x01")
    assert info.value.kind == "malformed_remaining_length"


def test_unterminated_length_needs_one_more_byte():
    with pytest.raises(InsufficientBytes) as info:
        decode_length(b"\x80\x80")
    assert info.value.needed == 1


def test_decode_length_ignores_trailing_bytes():
    encoded = encode_length(16_384)
    assert decode_length(encoded + b"\x7f\x00") == (len(encoded), 16_384)


def test_parse_fixed_header():
    header = parse_fixed_header(b"\xe0\x00")
    assert header.packet_type() is PacketType.DISCONNECT
    assert header.frame_length() == 2
    assert header.remaining_len == 0


def test_parse_fixed_header_needs_two_bytes():
    with pytest.raises(InsufficientBytes):
        parse_fixed_header(b"\xc0")


@pytest.mark.parametrize("byte1", [0x00, 0xF0])
def test_invalid_packet_type(byte1):
    header = FixedHeader(byte1=byte1, fixed_header_len=2, remaining_len=0)
    with pytest.raises(ProtocolError) as info:
        header.packet_type()
    assert info.value.kind == "invalid_packet_type"
    assert info.value.value == byte1 >> 4


def test_check_whole_packet():
    data = bytes([0x30]) + encode_length(5) + b"abcde"
    header = check(data, 1024)
    assert header.frame_length() == len(data)
    assert header.packet_type() is PacketType.PUBLISH


def test_check_incomplete_packet():
    data = bytes([0x30]) + encode_length(300) + b"abc"
    with pytest.raises(InsufficientBytes) as info:
        check(data, 1024)
    assert info.value.needed == parse_fixed_header(data).frame_length() - len(data)


def test_check_rejects_oversized_packet():
    data = bytes([0x30]) + encode_length(300)
    with pytest.raises(ProtocolError) as info:
        check(data, 299)
    assert info.value.kind == "payload_size_limit_exceeded"
    assert info.value.value == 300


@pytest.mark.parametrize(
    "packet_type, byte1",
    [
        (PacketType.SUBSCRIBE, 0x80),
        (PacketType.UNSUBSCRIBE, 0xA0),
        (PacketType.PUBREL, 0x60),
        (PacketType.CONNECT, 0x12),
        (PacketType.PINGREQ, 0xC2),
    ],
)
def test_reserved_flags_violations(packet_type, byte1):
    with pytest.raises(ProtocolError) as info:
        check_reserved_flags(packet_type, byte1)
    assert info.value.kind == "malformed_packet"


def test_reserved_flags_accepted():
    assert check_reserved_flags(PacketType.SUBSCRIBE, 0x82) is None
    assert check_reserved_flags(PacketType.PUBLISH, 0x3F) is None
    assert check_reserved_flags(PacketType.DISCONNECT, 0xE0) is None


def test_encode_bytes():
    assert encode_bytes(b"test") == b"\x00\x04test"
    assert encode_string("test") == b"\x00\x04test"


def test_reader_round_trip():
    data = (
        encode_string("héllo")
        + bytes([7])
        + struct.pack(">H", 1234)
        + struct.pack(">I", 1234)
        + bytes([1])
        + encode_length(16_384)
        + encode_bytes(b"\x00\xff")
        + b"tail"
    )
    reader = Reader(data)
    assert reader.read_string() == "héllo"
    assert reader.read_u8() == 7
    assert reader.read_u16() == 1234
    assert reader.read_u32() == 1234
    assert reader.read_bool() is True
    assert reader.read_length() == 16_384
    assert reader.read_bytes() == b"\x00\xff"
    assert reader.read_rest() == b"tail"
    assert reader.remaining() == 0


def test_reader_offset_skips_bytes():
    reader = Reader(b"xx" + encode_string("a"), offset=2)
    assert reader.read_string() == "a"


def test_reader_short_read_is_malformed():
    with pytest.raises(ProtocolError) as info:
        Reader(b"\x01").read_u16()
    assert info.value.kind == "malformed_packet"


def test_reader_bool_out_of_range():
    with pytest.raises(ProtocolError) as info:
        Reader(b"\x02").read_bool()
    assert info.value.kind == "malformed_packet"


def test_reader_bytes_cross_boundary():
    with pytest.raises(ProtocolError) as info:
        Reader(struct.pack(">H", 10) + b"abc").read_bytes()
    assert info.value.kind == "boundary_crossed"
    assert info.value.value == 10


def test_reader_invalid_utf8():
    with pytest.raises(ProtocolError) as info:
        Reader(encode_bytes(b"\xff\xfe")).read_string()
    assert info.value.kind == "topic_not_utf8"


def test_reader_length_on_empty_input():
    with pytest.raises(InsufficientBytes):
        Reader(b"").read_length()