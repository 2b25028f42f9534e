"""PUBACK, PUBREC, PUBREL and PUBCOMP packets.

All four share one layout: a packet identifier, then an optional reason code
and optional properties. The reason code and properties are left out when the
reason is success and there are no properties.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from enum import IntEnum
from typing import TypeVar

from foxmq.mqtt5.codec import (
    FixedHeader,
    PropertyType,
    ProtocolError,
    Reader,
    encode_length,
    encode_string,
)

_PUBACK_BYTE = 0x40
_PUBREC_BYTE = 0x50
_PUBREL_BYTE = 0x62
_PUBCOMP_BYTE = 0x70

R = TypeVar("R", bound=IntEnum)


class PubAckReason(IntEnum):
    SUCCESS = 0
    NO_MATCHING_SUBSCRIBERS = 16
    UNSPECIFIED_ERROR = 128
    IMPLEMENTATION_SPECIFIC_ERROR = 131
    NOT_AUTHORIZED = 135
    TOPIC_NAME_INVALID = 144
    PACKET_IDENTIFIER_IN_USE = 145
    QUOTA_EXCEEDED = 151
    PAYLOAD_FORMAT_INVALID = 153


class PubRecReason(IntEnum):
    SUCCESS = 0
    NO_MATCHING_SUBSCRIBERS = 16
    UNSPECIFIED_ERROR = 128
    IMPLEMENTATION_SPECIFIC_ERROR = 131
    NOT_AUTHORIZED = 135
    TOPIC_NAME_INVALID = 144
    PACKET_IDENTIFIER_IN_USE = 145
    QUOTA_EXCEEDED = 151
    PAYLOAD_FORMAT_INVALID = 153


class PubRelReason(IntEnum):
    SUCCESS = 0
    PACKET_IDENTIFIER_NOT_FOUND = 146


class PubCompReason(IntEnum):
    SUCCESS = 0
    PACKET_IDENTIFIER_NOT_FOUND = 146


@dataclass
class AckProperties:
    """Properties shared by the four acknowledgement packets."""

    reason_string: str | None = None
    user_properties: list[tuple[str, str]] = field(default_factory=list)


@dataclass
class PubAck:
    pkid: int
    reason: PubAckReason = PubAckReason.SUCCESS


@dataclass
class PubRec:
    pkid: int
    reason: PubRecReason = PubRecReason.SUCCESS


@dataclass
class PubRel:
    pkid: int
    reason: PubRelReason = PubRelReason.SUCCESS


@dataclass
class PubComp:
    pkid: int
    reason: PubCompReason = PubCompReason.SUCCESS


def _utf8_len(text: str) -> int:
    return len(text.encode("utf-8"))


def _reason(enum: type[R], num: int) -> R:
    try:
        return enum(num)
    except ValueError:
        raise ProtocolError("invalid_connect_return_code", num) from None


def _read_properties(reader: Reader) -> AckProperties | None:
    length = reader.read_length()
    if length == 0:
        return None

    props = AckProperties()
    cursor = 0
    while cursor < length:
        prop = reader.read_u8()
        cursor += 1
        if prop == PropertyType.REASON_STRING:
            reason = reader.read_string()
            props.reason_string = reason
            cursor += 2 + _utf8_len(reason)
        elif prop == PropertyType.USER_PROPERTY:
            key = reader.read_string()
            value = reader.read_string()
            props.user_properties.append((key, value))
            cursor += 2 + _utf8_len(key) + 2 + _utf8_len(value)
        else:
            raise ProtocolError("invalid_property_type", prop)
    return props


def _write_properties(properties: AckProperties) -> bytes:
    out = bytearray()
    if properties.reason_string is not None:
        out.append(PropertyType.REASON_STRING)
        out += encode_string(properties.reason_string)
    for key, value in properties.user_properties:
        out.append(PropertyType.USER_PROPERTY)
        out += encode_string(key)
        out += encode_string(value)
    return encode_length(len(out)) + bytes(out)


def _read_ack(
    fixed_header: FixedHeader, data: bytes, enum: type[R]
) -> tuple[int, R, AckProperties | None]:
    reader = Reader(bytes(data)[fixed_header.fixed_header_len : fixed_header.frame_length()])
    pkid = reader.read_u16()

    if fixed_header.remaining_len == 2:
        return pkid, enum(0), None

    reason = reader.read_u8()
    if fixed_header.remaining_len < 4:
        return pkid, _reason(enum, reason), None

    code = _reason(enum, reason)
    return pkid, code, _read_properties(reader)


def _write_ack(
    packet_byte: int, pkid: int, reason: IntEnum, properties: AckProperties | None
) -> bytes:
    body = bytearray(struct.pack(">H", pkid))
    if int(reason) != 0 or properties is not None:
        body.append(int(reason))
        body += encode_length(0) if properties is None else _write_properties(properties)
    return bytes([packet_byte]) + encode_length(len(body)) + bytes(body)


def read_puback(fixed_header: FixedHeader, data: bytes) -> tuple[PubAck, AckProperties | None]:
    """Decode a PUBACK frame; `data` starts at the fixed header."""
    pkid, reason, properties = _read_ack(fixed_header, data, PubAckReason)
    return PubAck(pkid, reason), properties


def write_puback(puback: PubAck, properties: AckProperties | None = None) -> bytes:
    """Encode a PUBACK frame."""
    return _write_ack(_PUBACK_BYTE, puback.pkid, puback.reason, properties)


def read_pubrec(fixed_header: FixedHeader, data: bytes) -> tuple[PubRec, AckProperties | None]:
    """Decode a PUBREC frame; `data` starts at the fixed header."""
    pkid, reason, properties = _read_ack(fixed_header, data, PubRecReason)
    return PubRec(pkid, reason), properties


def write_pubrec(pubrec: PubRec, properties: AckProperties | None = None) -> bytes:
    """Encode a PUBREC frame."""
    return _write_ack(_PUBREC_BYTE, pubrec.pkid, pubrec.reason, properties)


def read_pubrel(fixed_header: FixedHeader, data: bytes) -> tuple[PubRel, AckProperties | None]:
    """Decode a PUBREL frame; `data` starts at the fixed header."""
    pkid, reason, properties = _read_ack(fixed_header, data, PubRelReason)
    return PubRel(pkid, reason), properties


def write_pubrel(pubrel: PubRel, properties: AckProperties | None = None) -> bytes:
    """Encode a PUBREL frame."""
    return _write_ack(_PUBREL_BYTE, pubrel.pkid, pubrel.reason, properties)


def read_pubcomp(
    fixed_header: FixedHeader, data: bytes
) -> tuple[PubComp, AckProperties | None]:
    """Decode a PUBCOMP frame; `data` starts at the fixed header."""
    pkid, reason, properties = _read_ack(fixed_header, data, PubCompReason)
    return PubComp(pkid, reason), properties


def write_pubcomp(pubcomp: PubComp, properties: AckProperties | None = None) -> bytes:
    """Encode a PUBCOMP frame."""
    return _write_ack(_PUBCOMP_BYTE, pubcomp.pkid, pubcomp.reason, properties)