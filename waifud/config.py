"""Server configuration."""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Union

import yaml

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

_TAILSCALE_FIELDS = ("apiKey", "tailnet")
_YUBIKEY_FIELDS = ("clientID", "key")


def _require(data: Mapping[str, Any], key: str) -> Any:
    try:
        return data[key]
    except KeyError:
        raise ValueError(f"missing field `{key}`") from None


def _string(data: Mapping[str, Any], key: str) -> str:
    value = _require(data, key)
    if not isinstance(value, str):
        raise ValueError(f"field `{key}` must be a string")
    return value


@dataclass
class Tailscale:
    """Credentials for the Tailscale API."""

    api_key: str
    tailnet: str


@dataclass
class Yubikey:
    """Credentials for Yubico OTP validation."""

    client_id: str
    key: str


@dataclass(repr=False)
class Config:
    """Settings for the waifud server."""

    base_url: str
    hosts: list[str]
    bind_host: IPAddress
    port: int
    rpool_base: str
    qemu_path: str
    tailscale: Tailscale = field(compare=False)
    yubikey: Yubikey = field(compare=False)

    def __repr__(self) -> str:
        return "Config()"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Config":
        """Build a configuration from its serialised form."""
        hosts = _require(data, "hosts")
        if not isinstance(hosts, list) or not all(isinstance(h, str) for h in hosts):
            raise ValueError("field `hosts` must be a list of strings")
        port = _require(data, "port")
        if isinstance(port, bool) or not isinstance(port, int) or not 0 <= port <= 0xFFFF:
            raise ValueError("field `port` must be an integer between 0 and 65535")
        ts = _require(data, "tailscale")
        yk = _require(data, "yubikey")
        if not isinstance(ts, Mapping) or not isinstance(yk, Mapping):
            raise ValueError("fields `tailscale` and `yubikey` must be records")
        ts_values = [_string(ts, name) for name in _TAILSCALE_FIELDS]
        yk_values = [_string(yk, name) for name in _YUBIKEY_FIELDS]
        return cls(
            base_url=_string(data, "baseURL"),
            hosts=list(hosts),
            bind_host=ipaddress.ip_address(_string(data, "bindHost")),
            port=port,
            rpool_base=_string(data, "rpoolBase"),
            qemu_path=_string(data, "qemuPath"),
            tailscale=Tailscale(*ts_values),
            yubikey=Yubikey(*yk_values),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialise the configuration, leaving out the credentials."""
        return {
            "baseURL": self.base_url,
            "hosts": list(self.hosts),
            "bindHost": str(self.bind_host),
            "port": self.port,
            "rpoolBase": self.rpool_base,
            "qemuPath": self.qemu_path,
        }


def load_config(path: str | Path) -> Config:
    """Read a configuration file (YAML or JSON)."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, Mapping):
        raise ValueError(f"{path}: configuration must be a record")
    return Config.from_dict(data)