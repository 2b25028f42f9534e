"""MQTT v5 wire-format primitives and per-packet encoders and decoders."""

__all__ = [
    "acks",
    "codec",
    "connack",
    "connect",
    "disconnect",
    "ping",
    "publish",
    "subscribe",
    "unsuback",
    "unsubscribe",
]