"""PINGREQ and PINGRESP packets, which carry no variable header or payload."""

_PINGREQ = bytes([0xC0, 0x00])
_PINGRESP = bytes([0xD0, 0x00])


def write_pingreq() -> bytes:
    return _PINGREQ


def write_pingresp() -> bytes:
    return _PINGRESP