"""UNSUBSCRIBE packet."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field

from foxmq.mqtt5.codec import (
    FixedHeader,
    PropertyType,
    ProtocolError,
    Reader,
    encode_length,
    encode_string,
)


@dataclass
class Unsubscribe:
    pkid: int
    filters: list[str] = field(default_factory=list)


@dataclass
class UnsubscribeProperties:
    user_properties: list[tuple[str, str]] = field(default_factory=list)


def _read_user_properties(reader: Reader) -> UnsubscribeProperties | None:
    length = reader.read_length()
    if length == 0:
        return None

    pairs: list[tuple[str, str]] = []
    end = reader.remaining() - length
    while reader.remaining() > end:
        prop = reader.read_u8()
        if prop != PropertyType.USER_PROPERTY:
            raise ProtocolError("invalid_property_type", prop)
        pairs.append((reader.read_string(), reader.read_string()))
    return UnsubscribeProperties(pairs)


def _encode_user_properties(properties: UnsubscribeProperties | None) -> bytes:
    if properties is None:
        return encode_length(0)
    encoded = b"".join(
        bytes([PropertyType.USER_PROPERTY]) + encode_string(key) + encode_string(value)
        for key, value in properties.user_properties
    )
    return encode_length(len(encoded)) + encoded


def read(
    fixed_header: FixedHeader, data: bytes
) -> tuple[Unsubscribe, UnsubscribeProperties | None]:
    """Decode an UNSUBSCRIBE frame; `data` starts at the fixed header."""
    start, stop = fixed_header.fixed_header_len, fixed_header.frame_length()
    reader = Reader(bytes(data)[start:stop])
    pkid = reader.read_u16()
    properties = _read_user_properties(reader)

    filters = []
    while reader.remaining():
        filters.append(reader.read_string())

    return Unsubscribe(pkid, filters), properties


def write(unsubscribe: Unsubscribe, properties: UnsubscribeProperties | None = None) -> bytes:
    """Encode an UNSUBSCRIBE frame."""
    payload = b"".join(
        [
            struct.pack(">H", unsubscribe.pkid),
            _encode_user_properties(properties),
            *map(encode_string, unsubscribe.filters),
        ]
    )
    return b"\xa2" + encode_length(len(payload)) + payload