import pytest

from foxmq.mqtt5.codec import ProtocolError, QoS, encode_length, parse_fixed_header
from foxmq.mqtt5.subscribe import (
    Filter,
    RetainForwardRule,
    Subscribe,
    SubscribeProperties,
    read,
    write,
)


def _decode(data):
    return read(parse_fixed_header(data), data)


def _frame(byte1, body):
    return bytes([byte1]) + encode_length(len(body)) + bytes(body)


def test_minimal_wire_bytes():
    data = write(Subscribe(1, [Filter("a/b", QoS.AT_LEAST_ONCE)]))
    assert data == bytes([0x82, 0x09, 0x00, 0x01, 0x00, 0x00, 0x03]) + b"a/b" + bytes([0x01])


def test_first_byte_and_frame_length():
    data = write(Subscribe(7, [Filter("x")]))
    header = parse_fixed_header(data)
    assert data[0] == 0x82
    assert header.frame_length() == len(data)


def test_round_trip_without_properties():
    subscribe = Subscribe(
        42,
        [
            Filter("sensors/+/temp", QoS.EXACTLY_ONCE),
            Filter("a/#", QoS.AT_MOST_ONCE, nolocal=True),
        ],
    )
    assert _decode(write(subscribe)) == (subscribe, None)


def test_round_trip_with_properties():
    subscribe = Subscribe(3, [Filter("t")])
    properties = SubscribeProperties(id=100_000, user_properties=[("k", "v"), ("ü", "ß")])
    assert _decode(write(subscribe, properties)) == (subscribe, properties)


@pytest.mark.parametrize("rule", list(RetainForwardRule))
def test_option_bits_round_trip(rule):
    topic_filter = Filter(
        "t", QoS.AT_LEAST_ONCE, nolocal=True, preserve_retain=True, retain_forward_rule=rule
    )
    data = write(Subscribe(1, [topic_filter]))
    options = data[-1]
    assert options & 0b0000_0100
    assert options & 0b0000_1000
    assert (options >> 4) & 0b11 == int(rule)
    assert _decode(data)[0].filters == [topic_filter]


def test_invalid_retain_forward_rule():
    data = _frame(0x82, b"\x00\x01\x00\x00\x01a\x30")
    with pytest.raises(ProtocolError) as excinfo:
        _decode(data)
    assert excinfo.value.kind == "invalid_retain_forward_rule"
    assert excinfo.value.value == 3


def test_invalid_qos():
    data = _frame(0x82, b"\x00\x01\x00\x00\x01a\x03")
    with pytest.raises(ProtocolError) as excinfo:
        _decode(data)
    assert excinfo.value.kind == "invalid_qos"
    assert excinfo.value.value == 3


def test_empty_subscription():
    with pytest.raises(ProtocolError) as excinfo:
        _decode(_frame(0x82, b"\x00\x01\x00"))
    assert excinfo.value.kind == "empty_subscription"


def test_disallowed_property():
    data = _frame(0x82, b"\x00\x01\x01\x1f\x00\x01a\x00")
    with pytest.raises(ProtocolError) as excinfo:
        _decode(data)
    assert excinfo.value.kind == "invalid_property_type"
    assert excinfo.value.value == 0x1F


def test_truncated_filter_options():
    with pytest.raises(ProtocolError) as excinfo:
        _decode(_frame(0x82, b"\x00\x01\x00\x00\x01a"))
    assert excinfo.value.kind == "malformed_packet"