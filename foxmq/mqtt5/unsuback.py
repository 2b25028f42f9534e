"""UNSUBACK packet."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from enum import IntEnum

from foxmq.mqtt5.codec import (
    FixedHeader,
    PropertyType,
    ProtocolError,
    Reader,
    encode_length,
    encode_string,
)


class UnsubAckReason(IntEnum):
    SUCCESS = 0x00
    NO_SUBSCRIPTION_EXISTED = 0x11
    UNSPECIFIED_ERROR = 0x80
    IMPLEMENTATION_SPECIFIC_ERROR = 0x83
    NOT_AUTHORIZED = 0x87
    TOPIC_FILTER_INVALID = 0x8F
    PACKET_IDENTIFIER_IN_USE = 0x91


@dataclass
class UnsubAck:
    pkid: int
    reasons: list[UnsubAckReason] = field(default_factory=list)


@dataclass
class UnsubAckProperties:
    reason_string: str | None = None
    user_properties: list[tuple[str, str]] = field(default_factory=list)


def _reason(num: int) -> UnsubAckReason:
    try:
        return UnsubAckReason(num)
    except ValueError:
        raise ProtocolError("invalid_subscribe_reason_code", num) from None


def _parse_properties(reader: Reader) -> UnsubAckProperties | None:
    length = reader.read_length()
    if not length:
        return None

    result = UnsubAckProperties()
    end = reader.remaining() - length
    while reader.remaining() > end:
        match reader.read_u8():
            case PropertyType.REASON_STRING:
                result.reason_string = reader.read_string()
            case PropertyType.USER_PROPERTY:
                result.user_properties.append((reader.read_string(), reader.read_string()))
            case other:
                raise ProtocolError("invalid_property_type", other)
    return result


def _serialize_properties(properties: UnsubAckProperties | None) -> bytes:
    if properties is None:
        return encode_length(0)
    parts = []
    if properties.reason_string is not None:
        parts.append(bytes([PropertyType.REASON_STRING]))
        parts.append(encode_string(properties.reason_string))
    for key, value in properties.user_properties:
        parts += [bytes([PropertyType.USER_PROPERTY]), encode_string(key), encode_string(value)]
    encoded = b"".join(parts)
    return encode_length(len(encoded)) + encoded


def read(fixed_header: FixedHeader, data: bytes) -> tuple[UnsubAck, UnsubAckProperties | None]:
    """Decode an UNSUBACK frame; `data` starts at the fixed header."""
    content = bytes(data)[fixed_header.fixed_header_len : fixed_header.frame_length()]
    reader = Reader(content)
    pkid = reader.read_u16()
    properties = _parse_properties(reader)

    if not reader.remaining():
        raise ProtocolError("malformed_packet")

    return UnsubAck(pkid, [_reason(byte) for byte in reader.read_rest()]), properties


def write(unsuback: UnsubAck, properties: UnsubAckProperties | None = None) -> bytes:
    """Encode an UNSUBACK frame."""
    remaining = (
        struct.pack(">H", unsuback.pkid)
        + _serialize_properties(properties)
        + bytes(map(int, unsuback.reasons))
    )
    return b"\xb0" + encode_length(len(remaining)) + remaining