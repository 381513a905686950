"""Instance creation requests and MAC address generation."""

from __future__ import annotations

import random
from dataclasses import asdict, dataclass
from typing import Any, Mapping


@dataclass
class NewInstance:
    """A request to create a new instance."""

    host: str
    distro: str
    join_tailnet: bool
    name: str | None = None
    memory_mb: int | None = None
    cpus: int | None = None
    disk_size_gb: int | None = None
    zvol_prefix: str | None = None
    sata: bool | None = None
    user_data: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "NewInstance":
        missing = [key for key in ("host", "distro", "join_tailnet") if key not in data]
        if missing:
            raise ValueError(f"missing field `{missing[0]}`")
        return cls(
            host=data["host"],
            distro=data["distro"],
            join_tailnet=bool(data["join_tailnet"]),
            name=data.get("name"),
            memory_mb=data.get("memory_mb"),
            cpus=data.get("cpus"),
            disk_size_gb=data.get("disk_size_gb"),
            zvol_prefix=data.get("zvol_prefix"),
            sata=data.get("sata"),
            user_data=data.get("user_data"),
        )


def random_mac() -> str:
    """Return a random locally administered unicast MAC address."""
    addr = bytearray(random.randbytes(6))
    addr[0] = (addr[0] | 0x02) & 0xFE
    return ":".join(f"{b:02X}" for b in addr)