"""Virtual machines as reported by libvirt hosts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping


def _require(data: Mapping[str, Any], key: str) -> Any:
    try:
        return data[key]
    except KeyError:
        raise ValueError(f"missing field `{key}`") from None


@dataclass
class Machine:
    """A libvirt domain on one host."""

    name: str = ""
    host: str = ""
    active: bool = False
    uuid: str = ""
    addr: str | None = None
    memory_megs: int = 0
    cpus: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "host": self.host,
            "active": self.active,
            "uuid": self.uuid,
            "addr": self.addr,
            "memory_megs": self.memory_megs,
            "cpus": self.cpus,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Machine":
        memory = int(_require(data, "memory_megs"))
        cpus = int(_require(data, "cpus"))
        if memory < 0 or cpus < 0:
            raise ValueError("memory_megs and cpus must not be negative")
        return cls(
            name=_require(data, "name"),
            host=_require(data, "host"),
            active=bool(_require(data, "active")),
            uuid=_require(data, "uuid"),
            addr=data.get("addr"),
            memory_megs=memory,
            cpus=cpus,
        )


def libvirt_uri(host: str) -> str:
    """Return the libvirt connection URI for a host."""
    return f"qemu+ssh://root@{host}/system"