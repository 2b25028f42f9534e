"""Broker configuration files: user logins and the cluster address book."""

from __future__ import annotations

import ipaddress
import logging
import sys
import tomllib
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TypeVar

log = logging.getLogger(__name__)

T = TypeVar("T")

IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address

_HASH_KEY = "password-hash"


class ConfigError(Exception):
    """A configuration file could not be read or parsed."""


@dataclass
class AuthConfig:
    """Authentication settings, from `users.toml` or the command line."""

    allow_anonymous_login: bool = False
    silent_connect_errors: bool = False

    def merge(self, overrides: AuthConfig) -> None:
        """Merge values overridden elsewhere, e.g. on the command line."""
        self.allow_anonymous_login |= overrides.allow_anonymous_login

    def is_default(self) -> bool:
        return self == AuthConfig()


@dataclass(frozen=True)
class User:
    password_hash: str


@dataclass
class UsersConfig:
    by_username: dict[str, User] = field(default_factory=dict)
    auth: AuthConfig = field(default_factory=AuthConfig)


@dataclass(frozen=True)
class Address:
    """One cluster peer: its public key and its UDP socket address."""

    key: str
    addr: tuple[IPAddress, int]


@dataclass(frozen=True)
class Addresses:
    addresses: list[Address]


def _expect(value: Any, kind: type, what: str) -> Any:
    if not isinstance(value, kind):
        raise TypeError(f"{what}: expected {kind.__name__}, found {type(value).__name__}")
    return value


def _parse_port(text: str) -> int:
    if not text.isdigit() or int(text) > 0xFFFF:
        raise ValueError(f"invalid port: {text!r}")
    return int(text)


def _parse_socket_addr(text: str) -> tuple[IPAddress, int]:
    if text.startswith("["):
        host, sep, port = text[1:].partition("]:")
        if not sep:
            raise ValueError(f"invalid socket address: {text!r}")
        return ipaddress.IPv6Address(host), _parse_port(port)
    host, sep, port = text.rpartition(":")
    if not sep:
        raise ValueError(f"invalid socket address: {text!r}")
    return ipaddress.IPv4Address(host), _parse_port(port)


def _build_users(doc: dict[str, Any]) -> UsersConfig:
    users = _expect(doc.get("users", {}), dict, "users")
    by_username = {}
    for name, entry in users.items():
        entry = _expect(entry, dict, f"users.{name}")
        if _HASH_KEY not in entry:
            raise KeyError(f"users.{name}: missing field `{_HASH_KEY}`")
        hashed = _expect(entry[_HASH_KEY], str, f"users.{name}.{_HASH_KEY}")
        by_username[name] = User(password_hash=hashed)

    auth = _expect(doc.get("auth", {}), dict, "auth")
    return UsersConfig(
        by_username=by_username,
        auth=AuthConfig(
            allow_anonymous_login=_expect(
                auth.get("allow-anonymous-login", False), bool, "auth.allow-anonymous-login"
            ),
            silent_connect_errors=_expect(
                auth.get("silent-connect-errors", False), bool, "auth.silent-connect-errors"
            ),
        ),
    )


def _build_addresses(doc: dict[str, Any]) -> Addresses:
    if "addresses" not in doc:
        raise KeyError("missing field `addresses`")
    entries = _expect(doc["addresses"], list, "addresses")
    addresses = []
    for entry in entries:
        entry = _expect(entry, dict, "addresses entry")
        for name in ("key", "addr"):
            if name not in entry:
                raise KeyError(f"addresses entry: missing field `{name}`")
        addresses.append(
            Address(
                key=_expect(entry["key"], str, "key"),
                addr=_parse_socket_addr(_expect(entry["addr"], str, "addr")),
            )
        )
    return Addresses(addresses)


def _read_toml_optional(
    name: str, path: str | Path, build: Callable[[dict[str, Any]], T]
) -> T | None:
    path = Path(path)
    if path == Path("-"):
        try:
            text = sys.stdin.read()
        except OSError as e:
            raise ConfigError(f"error reading {name} from stdin") from e
    else:
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigError(f"error reading from {path}") from e

    try:
        return build(tomllib.loads(text))
    except (ValueError, TypeError, KeyError) as e:
        raise ConfigError(f"error parsing {name} from {path}: {e}") from e


def _read_toml(name: str, path: str | Path, build: Callable[[dict[str, Any]], T]) -> T:
    result = _read_toml_optional(name, path, build)
    if result is None:
        raise ConfigError(f"error reading {name} from {path}: file not found")
    return result


def read_users(path: str | Path) -> UsersConfig:
    """Read `users.toml`; a missing file means no users are configured."""
    config = _read_toml_optional("users", path, _build_users)
    if config is None:
        log.debug("users file not found at %s; assuming no users specified", path)
        return UsersConfig()
    return config


def read_addresses(path: str | Path) -> Addresses:
    """Read the cluster address book; the file must exist."""
    return _read_toml("addresses", path, _build_addresses)