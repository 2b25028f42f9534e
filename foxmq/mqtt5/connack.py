"""CONNACK packet."""

from __future__ import annotations

import struct
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, NamedTuple

from foxmq.mqtt5.codec import (
    FixedHeader,
    PropertyType,
    ProtocolError,
    Reader,
    encode_bytes,
    encode_length,
    encode_string,
)


class ConnectReturnCode(IntEnum):
    SUCCESS = 0
    UNSPECIFIED_ERROR = 128
    MALFORMED_PACKET = 129
    PROTOCOL_ERROR = 130
    IMPLEMENTATION_SPECIFIC_ERROR = 131
    UNSUPPORTED_PROTOCOL_VERSION = 132
    CLIENT_IDENTIFIER_NOT_VALID = 133
    BAD_USER_NAME_PASSWORD = 134
    NOT_AUTHORIZED = 135
    SERVER_UNAVAILABLE = 136
    SERVER_BUSY = 137
    BANNED = 138
    BAD_AUTHENTICATION_METHOD = 140
    TOPIC_NAME_INVALID = 144
    PACKET_TOO_LARGE = 149
    QUOTA_EXCEEDED = 151
    PAYLOAD_FORMAT_INVALID = 153
    RETAIN_NOT_SUPPORTED = 154
    QOS_NOT_SUPPORTED = 155
    USE_ANOTHER_SERVER = 156
    SERVER_MOVED = 157
    CONNECTION_RATE_EXCEEDED = 159


@dataclass
class ConnAck:
    session_present: bool
    code: ConnectReturnCode


@dataclass
class ConnAckProperties:
    """CONNACK properties; the availability flags are true when absent on the wire."""

    session_expiry_interval: int | None = None
    receive_max: int | None = None
    max_qos: int | None = None
    retain_available: bool = True
    max_packet_size: int | None = None
    assigned_client_identifier: str | None = None
    topic_alias_max: int | None = None
    reason_string: str | None = None
    user_properties: list[tuple[str, str]] = field(default_factory=list)
    wildcard_subscription_available: bool = True
    subscription_identifiers_available: bool = True
    shared_subscription_available: bool = True
    server_keep_alive: int | None = None
    response_information: str | None = None
    server_reference: str | None = None
    authentication_method: str | None = None
    authentication_data: bytes | None = None


class _Kind(NamedTuple):
    decode: Callable[[Reader], Any]
    encode: Callable[[Any], bytes]
    # Flags are only put on the wire when they differ from their default of true.
    is_flag: bool = False


_U8 = _Kind(Reader.read_u8, lambda value: bytes([value]))
_U16 = _Kind(Reader.read_u16, struct.Struct(">H").pack)
_U32 = _Kind(Reader.read_u32, struct.Struct(">I").pack)
_FLAG = _Kind(Reader.read_bool, lambda value: bytes([int(value)]), is_flag=True)
_STR = _Kind(Reader.read_string, encode_string)
_BIN = _Kind(Reader.read_bytes, encode_bytes)

# Wire order of the properties; `None` marks where user properties go.
_FIELDS: tuple[tuple[PropertyType, str, _Kind | None], ...] = (
    (PropertyType.SESSION_EXPIRY_INTERVAL, "session_expiry_interval", _U32),
    (PropertyType.RECEIVE_MAXIMUM, "receive_max", _U16),
    (PropertyType.MAXIMUM_QOS, "max_qos", _U8),
    (PropertyType.RETAIN_AVAILABLE, "retain_available", _FLAG),
    (PropertyType.MAXIMUM_PACKET_SIZE, "max_packet_size", _U32),
    (PropertyType.ASSIGNED_CLIENT_IDENTIFIER, "assigned_client_identifier", _STR),
    (PropertyType.TOPIC_ALIAS_MAXIMUM, "topic_alias_max", _U16),
    (PropertyType.REASON_STRING, "reason_string", _STR),
    (PropertyType.USER_PROPERTY, "user_properties", None),
    (PropertyType.WILDCARD_SUBSCRIPTION_AVAILABLE, "wildcard_subscription_available", _FLAG),
    (
        PropertyType.SUBSCRIPTION_IDENTIFIER_AVAILABLE,
        "subscription_identifiers_available",
        _FLAG,
    ),
    (PropertyType.SHARED_SUBSCRIPTION_AVAILABLE, "shared_subscription_available", _FLAG),
    (PropertyType.SERVER_KEEP_ALIVE, "server_keep_alive", _U16),
    (PropertyType.RESPONSE_INFORMATION, "response_information", _STR),
    (PropertyType.SERVER_REFERENCE, "server_reference", _STR),
    (PropertyType.AUTHENTICATION_METHOD, "authentication_method", _STR),
    (PropertyType.AUTHENTICATION_DATA, "authentication_data", _BIN),
)

_BY_NUMBER = {int(prop): (name, kind) for prop, name, kind in _FIELDS}


def _return_code(num: int) -> ConnectReturnCode:
    try:
        return ConnectReturnCode(num)
    except ValueError:
        raise ProtocolError("invalid_connect_return_code", num) from None


def _read_properties(reader: Reader) -> ConnAckProperties | None:
    length = reader.read_length()
    if length == 0:
        return None

    props = ConnAckProperties()
    end = reader.remaining() - length
    while reader.remaining() > end:
        prop = reader.read_u8()
        if prop not in _BY_NUMBER:
            raise ProtocolError("invalid_property_type", prop)
        name, kind = _BY_NUMBER[prop]
        if kind is None:
            props.user_properties.append((reader.read_string(), reader.read_string()))
        else:
            setattr(props, name, kind.decode(reader))
    return props


def _encode_properties(properties: ConnAckProperties | None) -> bytes:
    if properties is None:
        return encode_length(0)

    out = bytearray()
    for prop, name, kind in _FIELDS:
        value = getattr(properties, name)
        if kind is None:
            for key, text in value:
                out += bytes([prop]) + encode_string(key) + encode_string(text)
        elif (value is not True) if kind.is_flag else (value is not None):
            out += bytes([prop]) + kind.encode(value)
    return encode_length(len(out)) + bytes(out)


def read(fixed_header: FixedHeader, data: bytes) -> tuple[ConnAck, ConnAckProperties | None]:
    """Decode a CONNACK frame; `data` starts at the fixed header."""
    frame = bytes(data)[: fixed_header.frame_length()]
    reader = Reader(frame[fixed_header.fixed_header_len :])
    flags = reader.read_u8()
    return_code = reader.read_u8()
    properties = _read_properties(reader)

    connack = ConnAck(session_present=(flags & 0x01) == 1, code=_return_code(return_code))
    return connack, properties


def write(connack: ConnAck, properties: ConnAckProperties | None = None) -> bytes:
    """Encode a CONNACK frame."""
    variable = bytes([int(connack.session_present), int(connack.code)])
    variable += _encode_properties(properties)
    return b"\x20" + encode_length(len(variable)) + variable