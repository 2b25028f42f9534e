"""PUBLISH packet."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field

from foxmq.mqtt5.codec import (
    FixedHeader,
    PropertyType,
    ProtocolError,
    QoS,
    Reader,
    encode_bytes,
    encode_length,
    encode_string,
)

_PACKET_BYTE = 0b0011_0000


@dataclass
class Publish:
    topic: bytes
    payload: bytes = b""
    qos: QoS = QoS.AT_MOST_ONCE
    pkid: int = 0
    dup: bool = False
    retain: bool = False


@dataclass
class PublishProperties:
    payload_format_indicator: int | None = None
    message_expiry_interval: int | None = None
    topic_alias: int | None = None
    response_topic: str | None = None
    correlation_data: bytes | None = None
    user_properties: list[tuple[str, str]] = field(default_factory=list)
    subscription_identifiers: list[int] = field(default_factory=list)
    content_type: str | None = None


def _utf8_len(text: str) -> int:
    return len(text.encode("utf-8"))


def _property_type(prop: int) -> PropertyType:
    try:
        return PropertyType(prop)
    except ValueError:
        raise ProtocolError("invalid_property_type", prop) from None


def _read_properties(reader: Reader) -> PublishProperties | None:
    length = reader.read_length()
    if length == 0:
        return None

    props = PublishProperties()
    cursor = 0
    while cursor < length:
        prop = reader.read_u8()
        cursor += 1
        match _property_type(prop):
            case PropertyType.PAYLOAD_FORMAT_INDICATOR:
                props.payload_format_indicator = reader.read_u8()
                cursor += 1
            case PropertyType.MESSAGE_EXPIRY_INTERVAL:
                props.message_expiry_interval = reader.read_u32()
                cursor += 4
            case PropertyType.TOPIC_ALIAS:
                props.topic_alias = reader.read_u16()
                cursor += 2
            case PropertyType.RESPONSE_TOPIC:
                topic = reader.read_string()
                props.response_topic = topic
                cursor += 2 + _utf8_len(topic)
            case PropertyType.CORRELATION_DATA:
                data = reader.read_bytes()
                props.correlation_data = data
                cursor += 2 + len(data)
            case PropertyType.USER_PROPERTY:
                key = reader.read_string()
                value = reader.read_string()
                props.user_properties.append((key, value))
                cursor += 2 + _utf8_len(key) + 2 + _utf8_len(value)
            case PropertyType.SUBSCRIPTION_IDENTIFIER:
                before = reader.remaining()
                props.subscription_identifiers.append(reader.read_length())
                cursor += 1 + (before - reader.remaining())
            case PropertyType.CONTENT_TYPE:
                content_type = reader.read_string()
                props.content_type = content_type
                cursor += 2 + _utf8_len(content_type)
            case _:
                raise ProtocolError("invalid_property_type", prop)
    return props


def _write_properties(properties: PublishProperties) -> bytes:
    out = bytearray()
    if properties.payload_format_indicator is not None:
        out.append(PropertyType.PAYLOAD_FORMAT_INDICATOR)
        out.append(properties.payload_format_indicator)
    if properties.message_expiry_interval is not None:
        out.append(PropertyType.MESSAGE_EXPIRY_INTERVAL)
        out += struct.pack(">I", properties.message_expiry_interval)
    if properties.topic_alias is not None:
        out.append(PropertyType.TOPIC_ALIAS)
        out += struct.pack(">H", properties.topic_alias)
    if properties.response_topic is not None:
        out.append(PropertyType.RESPONSE_TOPIC)
        out += encode_string(properties.response_topic)
    if properties.correlation_data is not None:
        out.append(PropertyType.CORRELATION_DATA)
        out += encode_bytes(properties.correlation_data)
    for key, value in properties.user_properties:
        out.append(PropertyType.USER_PROPERTY)
        out += encode_string(key)
        out += encode_string(value)
    for ident in properties.subscription_identifiers:
        out.append(PropertyType.SUBSCRIPTION_IDENTIFIER)
        out += encode_length(ident)
    if properties.content_type is not None:
        out.append(PropertyType.CONTENT_TYPE)
        out += encode_string(properties.content_type)
    return encode_length(len(out)) + bytes(out)


def read(fixed_header: FixedHeader, data: bytes) -> tuple[Publish, PublishProperties | None]:
    """Decode a PUBLISH frame; `data` starts at the fixed header."""
    qos_num = (fixed_header.byte1 & 0b0110) >> 1
    try:
        qos = QoS(qos_num)
    except ValueError:
        raise ProtocolError("invalid_qos", qos_num) from None
    dup = bool(fixed_header.byte1 & 0b1000)
    retain = bool(fixed_header.byte1 & 0b0001)

    reader = Reader(bytes(data)[fixed_header.fixed_header_len : fixed_header.frame_length()])
    topic = reader.read_bytes()

    pkid = 0 if qos == QoS.AT_MOST_ONCE else reader.read_u16()
    if qos != QoS.AT_MOST_ONCE and pkid == 0:
        raise ProtocolError("packet_id_zero")

    properties = _read_properties(reader)
    publish = Publish(
        topic=topic,
        payload=reader.read_rest(),
        qos=qos,
        pkid=pkid,
        dup=dup,
        retain=retain,
    )
    return publish, properties


def write(publish: Publish, properties: PublishProperties | None = None) -> bytes:
    """Encode a PUBLISH frame; QoS 1 and 2 require a nonzero packet identifier."""
    qos = QoS(publish.qos)
    byte1 = _PACKET_BYTE | int(publish.retain) | int(qos) << 1 | int(publish.dup) << 3

    body = bytearray(encode_bytes(publish.topic))
    if qos != QoS.AT_MOST_ONCE:
        if publish.pkid == 0:
            raise ProtocolError("packet_id_zero")
        body += struct.pack(">H", publish.pkid)
    body += encode_length(0) if properties is None else _write_properties(properties)
    body += publish.payload

    return bytes([byte1]) + encode_length(len(body)) + bytes(body)