import pytest

from foxmq.mqtt5.codec import (
    PacketType,
    PropertyType,
    ProtocolError,
    check,
    check_reserved_flags,
    encode_length,
    encode_string,
    parse_fixed_header,
)
from foxmq.mqtt5.unsubscribe import Unsubscribe, UnsubscribeProperties, read, write


def _frame(body: bytes) -> bytes:
    return bytes([0xA2]) + encode_length(len(body)) + body


def _decode(packet: bytes):
    return read(parse_fixed_header(packet), packet)


def _reason_string_property() -> bytes:
    prop = bytes([PropertyType.REASON_STRING]) + encode_string("x")
    return encode_length(len(prop)) + prop


def test_wire_bytes_without_properties():
    assert write(Unsubscribe(pkid=1, filters=["a"])) == b"\xa2\x06\x00\x01\x00\x00\x01a"


@pytest.mark.parametrize(
    ("unsubscribe", "properties", "expected_properties"),
    [
        pytest.param(
            Unsubscribe(pkid=10, filters=["a/b", "c/#", "ünïcode/+"]),
            UnsubscribeProperties([("test", "test"), ("k", "v")]),
            UnsubscribeProperties([("test", "test"), ("k", "v")]),
            id="with-properties",
        ),
        pytest.param(
            Unsubscribe(pkid=65535, filters=["topic"]), None, None, id="without-properties"
        ),
        pytest.param(
            Unsubscribe(pkid=3, filters=["x"]),
            UnsubscribeProperties(),
            None,
            id="empty-properties",
        ),
    ],
)
def test_round_trip(unsubscribe, properties, expected_properties):
    assert _decode(write(unsubscribe, properties)) == (unsubscribe, expected_properties)


def test_written_packet_is_a_whole_valid_frame():
    packet = write(Unsubscribe(pkid=7, filters=["a", "b"]), UnsubscribeProperties([("k", "v")]))
    header = check(packet, len(packet))
    assert header.frame_length() == len(packet)
    assert header.packet_type() is PacketType.UNSUBSCRIBE
    assert check_reserved_flags(PacketType.UNSUBSCRIBE, header.byte1) is None


def test_no_filters_is_allowed():
    assert _decode(_frame(b"\x00\x05" + encode_length(0))) == (
        Unsubscribe(pkid=5, filters=[]),
        None,
    )


def test_read_ignores_bytes_after_frame():
    packet = write(Unsubscribe(pkid=2, filters=["a"]))
    assert _decode(packet + b"\x00\x01z") == (Unsubscribe(pkid=2, filters=["a"]), None)


@pytest.mark.parametrize(
    ("body", "kind"),
    [
        pytest.param(
            b"\x00\x01" + _reason_string_property() + encode_string("a"),
            "invalid_property_type",
            id="disallowed-property",
        ),
        pytest.param(
            b"\x00\x01" + encode_length(1) + b"\x05",
            "invalid_property_type",
            id="unknown-property",
        ),
        pytest.param(
            b"\x00\x01" + encode_length(0) + b"\x00\x09ab",
            "boundary_crossed",
            id="truncated-filter",
        ),
        pytest.param(b"\x00", "malformed_packet", id="missing-packet-id"),
    ],
)
def test_malformed_input_is_rejected(body, kind):
    with pytest.raises(ProtocolError) as info:
        _decode(_frame(body))
    assert info.value.kind == kind


def test_disallowed_property_reports_its_number():
    body = b"\x00\x01" + _reason_string_property() + encode_string("a")
    with pytest.raises(ProtocolError) as info:
        _decode(_frame(body))
    assert info.value.value == PropertyType.REASON_STRING