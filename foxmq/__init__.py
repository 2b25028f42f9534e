"""FoxMQ: MQTT v5 packet encoding and decoding, and broker configuration readers."""

__version__ = "0.3.1"