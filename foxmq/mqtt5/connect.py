"""CONNECT packet, with its optional last will and login."""

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

_PACKET_BYTE = 0x10
_PROTOCOL_NAME = "MQTT"
_PROTOCOL_LEVEL = 5

_CLEAN_SESSION = 0x02
_WILL_FLAG = 0x04
_WILL_QOS_MASK = 0b0001_1000
_WILL_RETAIN = 0x20
_PASSWORD_FLAG = 0x40
_USERNAME_FLAG = 0x80


@dataclass
class Connect:
    keep_alive: int
    client_id: str
    clean_session: bool


@dataclass
class ConnectProperties:
    session_expiry_interval: int | None = None
    receive_maximum: int | None = None
    max_packet_size: int | None = None
    topic_alias_max: int | None = None
    request_response_info: int | None = None
    request_problem_info: int | None = None
    user_properties: list[tuple[str, str]] = field(default_factory=list)
    authentication_method: str | None = None
    authentication_data: bytes | None = None


@dataclass
class LastWill:
    topic: bytes
    message: bytes
    qos: QoS
    retain: bool


@dataclass
class LastWillProperties:
    delay_interval: int | None = None
    payload_format_indicator: int | None = None
    message_expiry_interval: int | None = None
    content_type: str | None = None
    response_topic: str | None = None
    correlation_data: bytes | None = None
    user_properties: list[tuple[str, str]] = field(default_factory=list)


@dataclass
class Login:
    username: str
    password: str


def _utf8_len(text: str) -> int:
    return len(text.encode("utf-8"))


def _read_user_property(reader: Reader) -> tuple[tuple[str, str], int]:
    key = reader.read_string()
    value = reader.read_string()
    return (key, value), 2 + _utf8_len(key) + 2 + _utf8_len(value)


def _property_type(prop: int) -> PropertyType:
    try:
        return PropertyType(prop)
    except ValueError:
        raise ProtocolError("invalid_property_type", prop) from None


def _read_properties(reader: Reader) -> ConnectProperties | None:
    length = reader.read_length()
    if length == 0:
        return None

    props = ConnectProperties()
    cursor = 0
    while cursor < length:
        prop = reader.read_u8()
        cursor += 1
        match _property_type(prop):
            case PropertyType.SESSION_EXPIRY_INTERVAL:
                props.session_expiry_interval = reader.read_u32()
                cursor += 4
            case PropertyType.RECEIVE_MAXIMUM:
                props.receive_maximum = reader.read_u16()
                cursor += 2
            case PropertyType.MAXIMUM_PACKET_SIZE:
                props.max_packet_size = reader.read_u32()
                cursor += 4
            case PropertyType.TOPIC_ALIAS_MAXIMUM:
                props.topic_alias_max = reader.read_u16()
                cursor += 2
            case PropertyType.REQUEST_RESPONSE_INFORMATION:
                props.request_response_info = reader.read_u8()
                cursor += 1
            case PropertyType.REQUEST_PROBLEM_INFORMATION:
                props.request_problem_info = reader.read_u8()
                cursor += 1
            case PropertyType.USER_PROPERTY:
                pair, size = _read_user_property(reader)
                props.user_properties.append(pair)
                cursor += size
            case PropertyType.AUTHENTICATION_METHOD:
                method = reader.read_string()
                props.authentication_method = method
                cursor += 2 + _utf8_len(method)
            case PropertyType.AUTHENTICATION_DATA:
                data = reader.read_bytes()
                props.authentication_data = data
                cursor += 2 + len(data)
            case _:
                raise ProtocolError("invalid_property_type", prop)
    return props


def _read_will_properties(reader: Reader) -> LastWillProperties | None:
    length = reader.read_length()
    if length == 0:
        return None

    props = LastWillProperties()
    cursor = 0
    while cursor < length:
        prop = reader.read_u8()
        cursor += 1
        match _property_type(prop):
            case PropertyType.WILL_DELAY_INTERVAL:
                props.delay_interval = reader.read_u32()
                cursor += 4
            case PropertyType.PAYLOAD_FORMAT_INDICATOR:
                props.payload_format_indicator = reader.read_u8()
                cursor += 1
            case PropertyType.MESSAGE_EXPIRY_INTERVAL:
                props.message_expiry_interval = reader.read_u32()
                cursor += 4
            case PropertyType.CONTENT_TYPE:
                content_type = reader.read_string()
                props.content_type = content_type
                cursor += 2 + _utf8_len(content_type)
            case PropertyType.RESPONSE_TOPIC:
                topic = reader.read_string()
                props.response_topic = topic
                cursor += 2 + _utf8_len(topic)
            case PropertyType.CORRELATION_DATA:
                data = reader.read_bytes()
                props.correlation_data = data
                cursor += 2 + len(data)
            case PropertyType.USER_PROPERTY:
                pair, size = _read_user_property(reader)
                props.user_properties.append(pair)
                cursor += size
            case _:
                raise ProtocolError("invalid_property_type", prop)
    return props


def _read_will(
    connect_flags: int, reader: Reader
) -> tuple[LastWill | None, LastWillProperties | None]:
    if not connect_flags & _WILL_FLAG:
        if connect_flags & 0b0011_1000:
            raise ProtocolError("incorrect_packet_format")
        return None, None

    properties = _read_will_properties(reader)
    topic = reader.read_bytes()
    message = reader.read_bytes()
    qos_num = (connect_flags & _WILL_QOS_MASK) >> 3
    try:
        qos = QoS(qos_num)
    except ValueError:
        raise ProtocolError("invalid_qos", qos_num) from None
    will = LastWill(
        topic=topic,
        message=message,
        qos=qos,
        retain=bool(connect_flags & _WILL_RETAIN),
    )
    return will, properties


def _read_login(connect_flags: int, reader: Reader) -> Login | None:
    username = reader.read_string() if connect_flags & _USERNAME_FLAG else ""
    secret = reader.read_string() if connect_flags & _PASSWORD_FLAG else ""
    if not username and not secret:
        return None
    return Login(username=username, password=secret)


def read(
    fixed_header: FixedHeader, data: bytes
) -> tuple[
    Connect,
    ConnectProperties | None,
    LastWill | None,
    LastWillProperties | None,
    Login | None,
]:
    """Decode a CONNECT frame; `data` starts at the fixed header."""
    reader = Reader(bytes(data)[fixed_header.fixed_header_len : fixed_header.frame_length()])

    protocol_name = reader.read_string()
    protocol_level = reader.read_u8()
    if protocol_name != _PROTOCOL_NAME:
        raise ProtocolError("invalid_protocol")
    if protocol_level != _PROTOCOL_LEVEL:
        raise ProtocolError("invalid_protocol_level", protocol_level)

    connect_flags = reader.read_u8()
    clean_session = bool(connect_flags & _CLEAN_SESSION)
    keep_alive = reader.read_u16()

    properties = _read_properties(reader)
    client_id = reader.read_string()
    will, will_properties = _read_will(connect_flags, reader)
    login = _read_login(connect_flags, reader)

    connect = Connect(keep_alive=keep_alive, client_id=client_id, clean_session=clean_session)
    return connect, properties, will, will_properties, login


def _user_properties_bytes(pairs: list[tuple[str, str]]) -> bytes:
    out = bytearray()
    for key, value in pairs:
        out.append(PropertyType.USER_PROPERTY)
        out += encode_string(key)
        out += encode_string(value)
    return bytes(out)


def _write_properties(properties: ConnectProperties) -> bytes:
    out = bytearray()
    if properties.session_expiry_interval is not None:
        out.append(PropertyType.SESSION_EXPIRY_INTERVAL)
        out += struct.pack(">I", properties.session_expiry_interval)
    if properties.receive_maximum is not None:
        out.append(PropertyType.RECEIVE_MAXIMUM)
        out += struct.pack(">H", properties.receive_maximum)
    if properties.max_packet_size is not None:
        out.append(PropertyType.MAXIMUM_PACKET_SIZE)
        out += struct.pack(">I", properties.max_packet_size)
    if properties.topic_alias_max is not None:
        out.append(PropertyType.TOPIC_ALIAS_MAXIMUM)
        out += struct.pack(">H", properties.topic_alias_max)
    if properties.request_response_info is not None:
        out.append(PropertyType.REQUEST_RESPONSE_INFORMATION)
        out.append(properties.request_response_info)
    if properties.request_problem_info is not None:
        out.append(PropertyType.REQUEST_PROBLEM_INFORMATION)
        out.append(properties.request_problem_info)
    out += _user_properties_bytes(properties.user_properties)
    if properties.authentication_method is not None:
        out.append(PropertyType.AUTHENTICATION_METHOD)
        out += encode_string(properties.authentication_method)
    if properties.authentication_data is not None:
        out.append(PropertyType.AUTHENTICATION_DATA)
        out += encode_bytes(properties.authentication_data)
    return encode_length(len(out)) + bytes(out)


def _write_will_properties(properties: LastWillProperties) -> bytes:
    out = bytearray()
    if properties.delay_interval is not None:
        out.append(PropertyType.WILL_DELAY_INTERVAL)
        out += struct.pack(">I", properties.delay_interval)
    if properties.payload_format_indicator is not None:
        out.append(PropertyType.PAYLOAD_FORMAT_INDICATOR)
        out.append(properties.payload_format_indicator)
    if properties.message_expiry_interval is not None:
        out.append(PropertyType.MESSAGE_EXPIRY_INTERVAL)
        out += struct.pack(">I", properties.message_expiry_interval)
    if properties.content_type is not None:
        out.append(PropertyType.CONTENT_TYPE)
        out += encode_string(properties.content_type)
    if properties.response_topic is not None:
        out.append(PropertyType.RESPONSE_TOPIC)
        out += encode_string(properties.response_topic)
    if properties.correlation_data is not None:
        out.append(PropertyType.CORRELATION_DATA)
        out += encode_bytes(properties.correlation_data)
    out += _user_properties_bytes(properties.user_properties)
    return encode_length(len(out)) + bytes(out)


def write(
    connect: Connect,
    properties: ConnectProperties | None = None,
    will: LastWill | None = None,
    will_properties: LastWillProperties | None = None,
    login: Login | None = None,
) -> bytes:
    """Encode a CONNECT frame."""
    connect_flags = _CLEAN_SESSION if connect.clean_session else 0
    tail = bytearray(encode_string(connect.client_id))

    if will is not None:
        connect_flags |= _WILL_FLAG | (int(will.qos) << 3)
        if will.retain:
            connect_flags |= _WILL_RETAIN
        tail += encode_length(0) if will_properties is None else _write_will_properties(
            will_properties
        )
        tail += encode_bytes(will.topic)
        tail += encode_bytes(will.message)

    if login is not None:
        if login.username:
            connect_flags |= _USERNAME_FLAG
            tail += encode_string(login.username)
        if login.password:
            connect_flags |= _PASSWORD_FLAG
            tail += encode_string(login.password)

    body = bytearray(encode_string(_PROTOCOL_NAME))
    body.append(_PROTOCOL_LEVEL)
    body.append(connect_flags)
    body += struct.pack(">H", connect.keep_alive)
    body += encode_length(0) if properties is None else _write_properties(properties)
    body += tail

    return bytes([_PACKET_BYTE]) + encode_length(len(body)) + bytes(body)