"""DISCONNECT packet."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from enum import IntEnum

from foxmq.mqtt5.codec import (
    FixedHeader,
    PacketType,
    PropertyType,
    ProtocolError,
    Reader,
    encode_length,
    encode_string,
)

_PACKET_BYTE = 0xE0


class DisconnectReasonCode(IntEnum):
    NORMAL_DISCONNECTION = 0x00
    DISCONNECT_WITH_WILL_MESSAGE = 0x04
    UNSPECIFIED_ERROR = 0x80
    MALFORMED_PACKET = 0x81
    PROTOCOL_ERROR = 0x82
    IMPLEMENTATION_SPECIFIC_ERROR = 0x83
    NOT_AUTHORIZED = 0x87
    SERVER_BUSY = 0x89
    SERVER_SHUTTING_DOWN = 0x8B
    KEEP_ALIVE_TIMEOUT = 0x8D
    SESSION_TAKEN_OVER = 0x8E
    TOPIC_FILTER_INVALID = 0x8F
    TOPIC_NAME_INVALID = 0x90
    RECEIVE_MAXIMUM_EXCEEDED = 0x93
    TOPIC_ALIAS_INVALID = 0x94
    PACKET_TOO_LARGE = 0x95
    MESSAGE_RATE_TOO_HIGH = 0x96
    QUOTA_EXCEEDED = 0x97
    ADMINISTRATIVE_ACTION = 0x98
    PAYLOAD_FORMAT_INVALID = 0x99
    RETAIN_NOT_SUPPORTED = 0x9A
    QOS_NOT_SUPPORTED = 0x9B
    USE_ANOTHER_SERVER = 0x9C
    SERVER_MOVED = 0x9D
    SHARED_SUBSCRIPTION_NOT_SUPPORTED = 0x9E
    CONNECTION_RATE_EXCEEDED = 0x9F
    MAXIMUM_CONNECT_TIME = 0xA0
    SUBSCRIPTION_IDENTIFIERS_NOT_SUPPORTED = 0xA1
    WILDCARD_SUBSCRIPTIONS_NOT_SUPPORTED = 0xA2


@dataclass
class Disconnect:
    reason_code: DisconnectReasonCode = DisconnectReasonCode.NORMAL_DISCONNECTION


@dataclass
class DisconnectProperties:
    session_expiry_interval: int | None = None
    reason_string: str | None = None
    user_properties: list[tuple[str, str]] = field(default_factory=list)
    server_reference: str | None = None


def _utf8_len(text: str) -> int:
    return len(text.encode("utf-8"))


def _property_type(prop: int) -> PropertyType:
    try:
        return PropertyType(prop)
    except ValueError:
        raise ProtocolError("invalid_property_type", prop) from None


def _reason(num: int) -> DisconnectReasonCode:
    try:
        return DisconnectReasonCode(num)
    except ValueError:
        raise ProtocolError("invalid_connect_return_code", num) from None


def _read_properties(reader: Reader) -> DisconnectProperties | None:
    length = reader.read_length()
    if length == 0:
        return None

    props = DisconnectProperties()
    cursor = 0
    while cursor < length:
        prop = reader.read_u8()
        cursor += 1
        match _property_type(prop):
            case PropertyType.SESSION_EXPIRY_INTERVAL:
                props.session_expiry_interval = reader.read_u32()
                cursor += 4
            case PropertyType.REASON_STRING:
                reason = reader.read_string()
                props.reason_string = reason
                cursor += 2 + _utf8_len(reason)
            case PropertyType.USER_PROPERTY:
                key = reader.read_string()
                value = reader.read_string()
                props.user_properties.append((key, value))
                cursor += 2 + _utf8_len(key) + 2 + _utf8_len(value)
            case PropertyType.SERVER_REFERENCE:
                reference = reader.read_string()
                props.server_reference = reference
                cursor += 2 + _utf8_len(reference)
            case _:
                raise ProtocolError("invalid_property_type", prop)
    return props


def _write_properties(properties: DisconnectProperties) -> bytes:
    out = bytearray()
    if properties.session_expiry_interval is not None:
        out.append(PropertyType.SESSION_EXPIRY_INTERVAL)
        out += struct.pack(">I", properties.session_expiry_interval)
    if properties.reason_string is not None:
        out.append(PropertyType.REASON_STRING)
        out += encode_string(properties.reason_string)
    for key, value in properties.user_properties:
        out.append(PropertyType.USER_PROPERTY)
        out += encode_string(key)
        out += encode_string(value)
    if properties.server_reference is not None:
        out.append(PropertyType.SERVER_REFERENCE)
        out += encode_string(properties.server_reference)
    return encode_length(len(out)) + bytes(out)


def read(
    fixed_header: FixedHeader, data: bytes
) -> tuple[Disconnect, DisconnectProperties | None]:
    """Decode a DISCONNECT frame; `data` starts at the fixed header."""
    packet_type = fixed_header.byte1 >> 4
    flags = fixed_header.byte1 & 0b0000_1111

    if packet_type != PacketType.DISCONNECT:
        raise ProtocolError("invalid_packet_type", packet_type)
    if flags != 0:
        raise ProtocolError("malformed_packet")

    if fixed_header.remaining_len == 0:
        return Disconnect(DisconnectReasonCode.NORMAL_DISCONNECTION), None

    reader = Reader(bytes(data)[fixed_header.fixed_header_len : fixed_header.frame_length()])
    disconnect = Disconnect(_reason(reader.read_u8()))
    properties = _read_properties(reader)
    return disconnect, properties


def write(disconnect: Disconnect, properties: DisconnectProperties | None = None) -> bytes:
    """Encode a DISCONNECT frame; a plain normal disconnection is two bytes."""
    if (
        disconnect.reason_code == DisconnectReasonCode.NORMAL_DISCONNECTION
        and properties is None
    ):
        return bytes([_PACKET_BYTE, 0x00])

    body = bytearray([int(disconnect.reason_code)])
    body += encode_length(0) if properties is None else _write_properties(properties)
    return bytes([_PACKET_BYTE]) + encode_length(len(body)) + bytes(body)