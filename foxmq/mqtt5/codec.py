"""Primitives of the MQTT 5 wire format: fixed headers, integers, strings, lengths."""

from __future__ import annotations

import struct
from collections.abc import Iterable
from dataclasses import dataclass
from enum import IntEnum

MAX_REMAINING_LENGTH = 268_435_455

_MESSAGES = {
    "invalid_protocol": "invalid protocol name",
    "invalid_protocol_level": "invalid protocol level {}",
    "incorrect_packet_format": "incorrect packet format",
    "invalid_qos": "invalid QoS {}",
    "invalid_property_type": "invalid property type {}",
    "invalid_packet_type": "invalid packet type {}",
    "malformed_packet": "malformed packet",
    "payload_size_limit_exceeded": "payload size limit exceeded: {}",
    "insufficient_bytes": "at least {} more bytes required to frame the packet",
    "malformed_remaining_length": "malformed remaining length",
    "boundary_crossed": "length {} crosses the packet boundary",
    "topic_not_utf8": "string is not valid UTF-8",
    "payload_too_long": "payload too long",
    "payload_required": "packet requires a payload",
    "packet_id_zero": "packet identifier is zero",
    "empty_subscription": "subscription contains no filters",
    "invalid_retain_forward_rule": "invalid retain forward rule {}",
    "invalid_connect_return_code": "invalid reason code {}",
    "invalid_subscribe_reason_code": "invalid subscribe reason code {}",
}


class ProtocolError(Exception):
    """A packet could not be encoded or decoded; `kind` names the failure."""

    def __init__(self, kind: str, value: int | None = None) -> None:
        if kind not in _MESSAGES:
            raise ValueError(f"unknown protocol error kind: {kind!r}")
        self.kind = kind
        self.value = value
        super().__init__(_MESSAGES[kind].format(value))


class InsufficientBytes(ProtocolError):
    """The stream does not yet hold a whole packet."""

    def __init__(self, needed: int) -> None:
        super().__init__("insufficient_bytes", needed)
        self.needed = needed


class QoS(IntEnum):
    AT_MOST_ONCE = 0
    AT_LEAST_ONCE = 1
    EXACTLY_ONCE = 2


class PacketType(IntEnum):
    CONNECT = 1
    CONNACK = 2
    PUBLISH = 3
    PUBACK = 4
    PUBREC = 5
    PUBREL = 6
    PUBCOMP = 7
    SUBSCRIBE = 8
    SUBACK = 9
    UNSUBSCRIBE = 10
    UNSUBACK = 11
    PINGREQ = 12
    PINGRESP = 13
    DISCONNECT = 14


class PropertyType(IntEnum):
    PAYLOAD_FORMAT_INDICATOR = 1
    MESSAGE_EXPIRY_INTERVAL = 2
    CONTENT_TYPE = 3
    RESPONSE_TOPIC = 8
    CORRELATION_DATA = 9
    SUBSCRIPTION_IDENTIFIER = 11
    SESSION_EXPIRY_INTERVAL = 17
    ASSIGNED_CLIENT_IDENTIFIER = 18
    SERVER_KEEP_ALIVE = 19
    AUTHENTICATION_METHOD = 21
    AUTHENTICATION_DATA = 22
    REQUEST_PROBLEM_INFORMATION = 23
    WILL_DELAY_INTERVAL = 24
    REQUEST_RESPONSE_INFORMATION = 25
    RESPONSE_INFORMATION = 26
    SERVER_REFERENCE = 28
    REASON_STRING = 31
    RECEIVE_MAXIMUM = 33
    TOPIC_ALIAS_MAXIMUM = 34
    TOPIC_ALIAS = 35
    MAXIMUM_QOS = 36
    RETAIN_AVAILABLE = 37
    USER_PROPERTY = 38
    MAXIMUM_PACKET_SIZE = 39
    WILDCARD_SUBSCRIPTION_AVAILABLE = 40
    SUBSCRIPTION_IDENTIFIER_AVAILABLE = 41
    SHARED_SUBSCRIPTION_AVAILABLE = 42


@dataclass(frozen=True)
class FixedHeader:
    """First byte of a packet plus its decoded remaining length."""

    byte1: int
    fixed_header_len: int
    remaining_len: int

    def packet_type(self) -> PacketType:
        num = self.byte1 >> 4
        try:
            return PacketType(num)
        except ValueError:
            raise ProtocolError("invalid_packet_type", num) from None

    def frame_length(self) -> int:
        """Size of the whole packet: fixed header, variable header and payload."""
        return self.fixed_header_len + self.remaining_len


class Reader:
    """Cursor over packet bytes; every short read is a malformed packet."""

    def __init__(self, data: bytes | bytearray | memoryview, offset: int = 0) -> None:
        self._data = bytes(data)
        self._pos = offset

    def remaining(self) -> int:
        return len(self._data) - self._pos

    def _take(self, count: int) -> bytes:
        if self.remaining() < count:
            raise ProtocolError("malformed_packet")
        chunk = self._data[self._pos : self._pos + count]
        self._pos += count
        return chunk

    def read_u8(self) -> int:
        return self._take(1)[0]

    def read_u16(self) -> int:
        return struct.unpack(">H", self._take(2))[0]

    def read_u32(self) -> int:
        return struct.unpack(">I", self._take(4))[0]

    def read_bool(self) -> bool:
        value = self.read_u8()
        if value not in (0, 1):
            raise ProtocolError("malformed_packet")
        return value == 1

    def read_bytes(self) -> bytes:
        """Read a two-byte length followed by that many bytes."""
        length = self.read_u16()
        if length > self.remaining():
            raise ProtocolError("boundary_crossed", length)
        return self._take(length)

    def read_string(self) -> str:
        try:
            return self.read_bytes().decode("utf-8")
        except UnicodeDecodeError:
            raise ProtocolError("topic_not_utf8") from None

    def read_length(self) -> int:
        """Read a variable byte integer."""
        count, value = decode_length(memoryview(self._data)[self._pos :])
        self._pos += count
        return value

    def read_rest(self) -> bytes:
        rest = self._data[self._pos :]
        self._pos = len(self._data)
        return rest


def decode_length(stream: Iterable[int]) -> tuple[int, int]:
    """Decode a variable byte integer; return (bytes used, value)."""
    value = 0
    shift = 0
    count = 0
    for byte in stream:
        count += 1
        value += (byte & 0x7F) << shift
        if not byte & 0x80:
            return count, value
        shift += 7
        if shift > 21:
            raise ProtocolError("malformed_remaining_length")
    raise InsufficientBytes(1)


def encode_length(length: int) -> bytes:
    """Encode a variable byte integer."""
    if length > MAX_REMAINING_LENGTH:
        raise ProtocolError("payload_too_long")
    out = bytearray()
    while True:
        byte = length % 128
        length //= 128
        if length:
            byte |= 0x80
        out.append(byte)
        if not length:
            return bytes(out)


def length_of_length(length: int) -> int:
    """Number of bytes `encode_length` uses for `length`."""
    if length >= 2_097_152:
        return 4
    if length >= 16_384:
        return 3
    if length >= 128:
        return 2
    return 1


def encode_bytes(data: bytes) -> bytes:
    if len(data) > 0xFFFF:
        raise ProtocolError("payload_too_long")
    return struct.pack(">H", len(data)) + bytes(data)


def encode_string(text: str) -> bytes:
    return encode_bytes(text.encode("utf-8"))


def parse_fixed_header(stream: bytes | bytearray | memoryview) -> FixedHeader:
    view = memoryview(stream)
    if len(view) < 2:
        raise InsufficientBytes(2 - len(view))
    count, remaining = decode_length(view[1:])
    return FixedHeader(byte1=view[0], fixed_header_len=count + 1, remaining_len=remaining)


def check(stream: bytes | bytearray | memoryview, max_packet_size: int) -> FixedHeader:
    """Return the fixed header if `stream` holds a whole packet of acceptable size."""
    fixed_header = parse_fixed_header(stream)
    if fixed_header.remaining_len > max_packet_size:
        raise ProtocolError("payload_size_limit_exceeded", fixed_header.remaining_len)
    frame_length = fixed_header.frame_length()
    if len(stream) < frame_length:
        raise InsufficientBytes(frame_length - len(stream))
    return fixed_header


_RESERVED_FLAGS = {
    PacketType.PUBREL: 0b0010,
    PacketType.SUBSCRIBE: 0b0010,
    PacketType.UNSUBSCRIBE: 0b0010,
}


def check_reserved_flags(packet_type: PacketType, byte1: int) -> None:
    """Raise if the low nibble of `byte1` differs from what the packet type reserves."""
    if packet_type is PacketType.PUBLISH:
        return
    if byte1 & 0b1111 != _RESERVED_FLAGS.get(packet_type, 0b0000):
        raise ProtocolError("malformed_packet")