"""SUBSCRIBE packet."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from enum import IntEnum

from foxmq.mqtt5.codec import (
    FixedHeader,
    PropertyType,
    ProtocolError,
    QoS,
    Reader,
    encode_length,
    encode_string,
)

_PACKET_BYTE = 0x82

_NO_LOCAL = 0b0000_0100
_PRESERVE_RETAIN = 0b0000_1000


class RetainForwardRule(IntEnum):
    """When retained messages are sent for a new subscription."""

    ON_EVERY_SUBSCRIBE = 0
    ON_NEW_SUBSCRIBE = 1
    NEVER = 2


@dataclass
class Filter:
    path: str
    qos: QoS = QoS.AT_MOST_ONCE
    nolocal: bool = False
    preserve_retain: bool = False
    retain_forward_rule: RetainForwardRule = RetainForwardRule.ON_EVERY_SUBSCRIBE


@dataclass
class Subscribe:
    pkid: int
    filters: list[Filter] = field(default_factory=list)


@dataclass
class SubscribeProperties:
    id: int | None = None
    user_properties: list[tuple[str, str]] = field(default_factory=list)


def _utf8_len(text: str) -> int:
    return len(text.encode("utf-8"))


def _property_type(prop: int) -> PropertyType:
    try:
        return PropertyType(prop)
    except ValueError:
        raise ProtocolError("invalid_property_type", prop) from None


def _read_properties(reader: Reader) -> SubscribeProperties | None:
    length = reader.read_length()
    if length == 0:
        return None

    props = SubscribeProperties()
    cursor = 0
    while cursor < length:
        prop = reader.read_u8()
        cursor += 1
        match _property_type(prop):
            case PropertyType.SUBSCRIPTION_IDENTIFIER:
                before = reader.remaining()
                props.id = reader.read_length()
                cursor += 1 + (before - reader.remaining())
            case PropertyType.USER_PROPERTY:
                key = reader.read_string()
                value = reader.read_string()
                props.user_properties.append((key, value))
                cursor += 2 + _utf8_len(key) + 2 + _utf8_len(value)
            case _:
                raise ProtocolError("invalid_property_type", prop)
    return props


def _write_properties(properties: SubscribeProperties) -> bytes:
    out = bytearray()
    if properties.id is not None:
        out.append(PropertyType.SUBSCRIPTION_IDENTIFIER)
        out += encode_length(properties.id)
    for key, value in properties.user_properties:
        out.append(PropertyType.USER_PROPERTY)
        out += encode_string(key)
        out += encode_string(value)
    return encode_length(len(out)) + bytes(out)


def _read_filter(reader: Reader) -> Filter:
    path = reader.read_string()
    options = reader.read_u8()
    requested_qos = options & 0b0000_0011
    rule = (options >> 4) & 0b0000_0011
    try:
        retain_forward_rule = RetainForwardRule(rule)
    except ValueError:
        raise ProtocolError("invalid_retain_forward_rule", rule) from None
    try:
        qos = QoS(requested_qos)
    except ValueError:
        raise ProtocolError("invalid_qos", requested_qos) from None
    return Filter(
        path=path,
        qos=qos,
        nolocal=bool(options & _NO_LOCAL),
        preserve_retain=bool(options & _PRESERVE_RETAIN),
        retain_forward_rule=retain_forward_rule,
    )


def _write_filter(topic_filter: Filter) -> bytes:
    options = int(topic_filter.qos)
    if topic_filter.nolocal:
        options |= _NO_LOCAL
    if topic_filter.preserve_retain:
        options |= _PRESERVE_RETAIN
    options |= int(topic_filter.retain_forward_rule) << 4
    return encode_string(topic_filter.path) + bytes([options])


def read(
    fixed_header: FixedHeader, data: bytes
) -> tuple[Subscribe, SubscribeProperties | None]:
    """Decode a SUBSCRIBE frame; `data` starts at the fixed header."""
    reader = Reader(bytes(data)[fixed_header.fixed_header_len : fixed_header.frame_length()])
    pkid = reader.read_u16()
    properties = _read_properties(reader)

    filters = []
    while reader.remaining():
        filters.append(_read_filter(reader))

    if not filters:
        raise ProtocolError("empty_subscription")
    return Subscribe(pkid, filters), properties


def write(subscribe: Subscribe, properties: SubscribeProperties | None = None) -> bytes:
    """Encode a SUBSCRIBE frame."""
    body = bytearray(struct.pack(">H", subscribe.pkid))
    body += encode_length(0) if properties is None else _write_properties(properties)
    for topic_filter in subscribe.filters:
        body += _write_filter(topic_filter)
    return bytes([_PACKET_BYTE]) + encode_length(len(body)) + bytes(body)