import pytest

from foxmq.mqtt5.codec import FixedHeader, ProtocolError, parse_fixed_header
from foxmq.mqtt5.disconnect import (
    Disconnect,
    DisconnectProperties,
    DisconnectReasonCode,
    read,
    write,
)


def sample2():
    properties = DisconnectProperties(
        session_expiry_interval=1234,
        reason_string="test",
        user_properties=[("test", "test")],
        server_reference="test",
    )
    return Disconnect(DisconnectReasonCode.UNSPECIFIED_ERROR), properties


def sample_bytes2():
    return bytes(
        [
            0xE0,
            0x22,
            0x80,
            0x20,
            0x11, 0x00, 0x00, 0x04, 0xD2,
            0x1F, 0x00, 0x04, 0x74, 0x65, 0x73, 0x74,
            0x26, 0x00, 0x04, 0x74, 0x65, 0x73, 0x74, 0x00, 0x04, 0x74, 0x65, 0x73, 0x74,
            0x1C, 0x00, 0x04, 0x74, 0x65, 0x73, 0x74,
        ]
    )


def _parse(data):
    fixed_header = parse_fixed_header(data)
    return read(fixed_header, data[: fixed_header.frame_length()])


def test_disconnect1_parsing_works():
    disconnect, properties = _parse(bytes([0xE0, 0x00]))
    assert disconnect == Disconnect(DisconnectReasonCode.NORMAL_DISCONNECTION)
    assert properties is None


def test_disconnect1_encoding_works():
    disconnect = Disconnect(DisconnectReasonCode.NORMAL_DISCONNECTION)
    assert write(disconnect, None) == bytes([0xE0, 0x00])


def test_disconnect2_parsing_works():
    assert _parse(sample_bytes2()) == sample2()


def test_disconnect2_encoding_works():
    disconnect, properties = sample2()
    assert write(disconnect, properties) == sample_bytes2()


def test_reason_without_properties_round_trips():
    disconnect = Disconnect(DisconnectReasonCode.SERVER_SHUTTING_DOWN)
    encoded = write(disconnect)
    assert _parse(encoded) == (disconnect, None)


def test_wrong_packet_type_rejected():
    with pytest.raises(ProtocolError) as info:
        read(FixedHeader(byte1=0xC0, fixed_header_len=2, remaining_len=0), bytes([0xC0, 0x00]))
    assert info.value.kind == "invalid_packet_type"
    assert info.value.value == 12


def test_nonzero_flags_rejected():
    with pytest.raises(ProtocolError) as info:
        _parse(bytes([0xE1, 0x00]))
    assert info.value.kind == "malformed_packet"


def test_unknown_reason_code_rejected():
    with pytest.raises(ProtocolError) as info:
        _parse(bytes([0xE0, 0x02, 0x05, 0x00]))
    assert info.value.kind == "invalid_connect_return_code"
    assert info.value.value == 5


def test_invalid_property_type_rejected():
    with pytest.raises(ProtocolError) as info:
        _parse(bytes([0xE0, 0x04, 0x80, 0x02, 0x23, 0x00]))
    assert info.value.kind == "invalid_property_type"