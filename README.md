# foxmq

Encoders and decoders for MQTT v5 packets, and readers for the TOML
configuration files of the FoxMQ message broker. It needs nothing beyond the
Python standard library (Python 3.11 or later).

## Installation

```
pip install foxmq
```

To run the test suite:

```
pip install "foxmq[test]"
pytest
```

## Framing a packet

`foxmq.mqtt5.codec` has the wire-format primitives. `check(stream,
max_packet_size)` looks at the start of a byte stream and returns its
`FixedHeader` once a whole packet is there:

- if too few bytes have arrived it raises `InsufficientBytes`, whose
  `needed` attribute says how many more are required at least;
- if the remaining length is over `max_packet_size` it raises
  `ProtocolError` with `kind == "payload_size_limit_exceeded"`.

`FixedHeader.packet_type()` gives the `PacketType`, and
`FixedHeader.frame_length()` the size of the whole packet.
`check_reserved_flags(packet_type, byte1)` raises `ProtocolError` if the low
four bits of the first byte are not those the packet type reserves.

Every decoding or encoding failure is a `ProtocolError`; its `kind` is a
short name such as `"malformed_packet"` or `"invalid_property_type"`, and
`value` holds the offending number where there is one.

The codec module also has `encode_length` / `decode_length` for variable
byte integers, `length_of_length`, `encode_bytes` / `encode_string` for
two-byte length prefixed data, and a `Reader` cursor over packet bytes.

## Reading and writing packets

Each packet type has a module whose `read(fixed_header, data)` takes the
bytes of a frame (starting at the fixed header) and returns the packet and
its properties (or `None` when the packet carries none), and whose `write`
returns the encoded frame as `bytes`:

```python
from foxmq.mqtt5.codec import QoS, check
from foxmq.mqtt5.publish import Publish, PublishProperties, read, write

data = write(
    Publish(topic=b"sensors/temp", payload=b"21.5", qos=QoS.AT_LEAST_ONCE, pkid=7),
    PublishProperties(content_type="text/plain"),
)

header = check(data, max_packet_size=1024)
publish, properties = read(header, data)
assert publish.payload == b"21.5"
assert properties.content_type == "text/plain"
```

The modules and what they hold:

- `foxmq.mqtt5.connect` – `Connect`, `ConnectProperties`, `LastWill`,
  `LastWillProperties`, `Login`; `read` returns a five-tuple and `write`
  takes the same five parts.
- `foxmq.mqtt5.connack` – `ConnAck`, `ConnAckProperties`,
  `ConnectReturnCode`. The availability flags in `ConnAckProperties` default
  to true and are only written when false.
- `foxmq.mqtt5.publish` – `Publish`, `PublishProperties`. QoS 1 and 2 need a
  nonzero `pkid`.
- `foxmq.mqtt5.acks` – `PubAck`, `PubRec`, `PubRel`, `PubComp`, their reason
  enums and the shared `AckProperties`, with `read_puback` / `write_puback`
  and the same pair for each of the others. A success with no properties is
  written as just the packet identifier.
- `foxmq.mqtt5.subscribe` – `Subscribe`, `Filter`, `RetainForwardRule`,
  `SubscribeProperties`. A SUBSCRIBE without filters is rejected on reading.
- `foxmq.mqtt5.unsubscribe` – `Unsubscribe`, `UnsubscribeProperties`.
- `foxmq.mqtt5.unsuback` – `UnsubAck`, `UnsubAckReason`,
  `UnsubAckProperties`.
- `foxmq.mqtt5.disconnect` – `Disconnect`, `DisconnectReasonCode`,
  `DisconnectProperties`. A normal disconnection without properties is the
  two bytes `E0 00`.
- `foxmq.mqtt5.ping` – `write_pingreq()` and `write_pingresp()`, which
  return the two-byte frames.

## Configuration files

`foxmq.config` reads the broker's TOML files. A path of `-` reads from
standard input.

`read_users(path)` reads a users file and returns a `UsersConfig`; if the
file does not exist it returns an empty one:

```toml
[users.alice]
password-hash = "placeholder"

[auth]
allow-anonymous-login = false
silent-connect-errors = false
```

`UsersConfig.by_username` maps names to `User` objects; `UsersConfig.auth`
is an `AuthConfig`, whose `merge(overrides)` turns on anonymous login if the
overrides allow it and whose `is_default()` tells whether both settings are
false.

`read_addresses(path)` reads the cluster address book, which must exist:

```toml
[[addresses]]
key = "placeholder"
addr = "127.0.0.1:19793"

[[addresses]]
key = "placeholder"
addr = "[::1]:19794"
```

It returns `Addresses`, a list of `Address` entries whose `addr` is a tuple
of an `ipaddress` address and a port.

Parse errors, unreadable files and a missing address book raise
`foxmq.config.ConfigError`.

## What this package does not do

- There is no single entry point that reads any packet from a stream and
  dispatches on its type; callers use `check` and then the `read` of the
  module for that packet type.
- SUBACK packets cannot be encoded or decoded.
- There is no broker, network server, cluster membership or command-line
  program, and nothing that hashes or checks passwords; the configuration
  readers only load the files.