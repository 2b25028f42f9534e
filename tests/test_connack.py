import pytest

from foxmq.mqtt5 import connack
from foxmq.mqtt5.codec import ProtocolError, parse_fixed_header
from foxmq.mqtt5.connack import ConnAck, ConnAckProperties, ConnectReturnCode


def _decode(frame: bytes):
    return connack.read(parse_fixed_header(frame), frame)


def test_minimal_wire_bytes():
    frame = connack.write(ConnAck(False, ConnectReturnCode.SUCCESS))
    assert frame == b"\x20\x03\x00\x00\x00"


def test_minimal_round_trip():
    ack = ConnAck(True, ConnectReturnCode.NOT_AUTHORIZED)
    decoded, props = _decode(connack.write(ack))
    assert decoded == ack
    assert props is None


def test_full_properties_round_trip():
    props = ConnAckProperties(
        session_expiry_interval=1234,
        receive_max=10,
        max_qos=1,
        retain_available=False,
        max_packet_size=4096,
        assigned_client_identifier="client-a",
        topic_alias_max=5,
        reason_string="reason",
        user_properties=[("k", "v"), ("ключ", "значение")],
        wildcard_subscription_available=False,
        subscription_identifiers_available=False,
        shared_subscription_available=False,
        server_keep_alive=60,
        response_information="info",
        server_reference="other",
        authentication_method="method",
        authentication_data=b"\x01\x02\x03",
    )
    ack = ConnAck(False, ConnectReturnCode.SUCCESS)
    frame = connack.write(ack, props)
    decoded, decoded_props = _decode(frame)
    assert decoded == ack
    assert decoded_props == props
    assert parse_fixed_header(frame).frame_length() == len(frame)


def test_default_properties_encode_as_empty():
    decoded, props = _decode(connack.write(ConnAck(False, ConnectReturnCode.SUCCESS), ConnAckProperties()))
    assert props is None
    assert decoded.code is ConnectReturnCode.SUCCESS


def test_true_flags_are_not_encoded():
    plain = connack.write(ConnAck(False, ConnectReturnCode.SUCCESS), ConnAckProperties(receive_max=3))
    _, props = _decode(plain)
    assert props.retain_available is True
    assert props.shared_subscription_available is True
    assert props.receive_max == 3


@pytest.mark.parametrize("code", list(ConnectReturnCode))
def test_every_return_code_round_trips(code):
    decoded, _ = _decode(connack.write(ConnAck(False, code)))
    assert decoded.code is code


def test_invalid_return_code():
    with pytest.raises(ProtocolError) as info:
        _decode(bytes([0x20, 0x03, 0x00, 0x01, 0x00]))
    assert info.value.kind == "invalid_connect_return_code"
    assert info.value.value == 1


def test_property_not_allowed_in_connack():
    with pytest.raises(ProtocolError) as info:
        _decode(bytes([0x20, 0x05, 0x00, 0x00, 0x02, 0x01, 0x00]))
    assert info.value.kind == "invalid_property_type"
    assert info.value.value == 1


def test_bad_boolean_property_is_malformed():
    with pytest.raises(ProtocolError) as info:
        _decode(bytes([0x20, 0x05, 0x00, 0x00, 0x02, 0x25, 0x02]))
    assert info.value.kind == "malformed_packet"


def test_truncated_frame_is_malformed():
    with pytest.raises(ProtocolError) as info:
        _decode(bytes([0x20, 0x01, 0x00]))
    assert info.value.kind == "malformed_packet"