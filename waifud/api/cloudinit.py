"""Cloud-init data served to instances while they boot."""

from __future__ import annotations

import sqlite3
import uuid as uuidlib
from dataclasses import asdict, dataclass, field
from typing import Any

import yaml

from ..errors import NotFound
from ..models import Instance, record_audit

_MOTD_CONTENT = (
    "#!/bin/sh\n#\n# This file is written by waifud.\n"
    'echo ""\necho "Welcome to waifud <3"\n'
)
_TAGGED_DISTROS = frozenset({"ubuntu-20.04", "ubuntu-22.04"})


@dataclass
class File:
    """A file for cloud-init to write."""

    owner: str = ""
    path: str = ""
    permissions: str = ""
    content: str = ""


@dataclass
class CloudConfig:
    """The subset of a cloud-config document that waifud produces."""

    write_files: list[File] = field(default_factory=list)
    runcmd: list[list[str]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "write_files": [asdict(f) for f in self.write_files],
            "runcmd": [list(cmd) for cmd in self.runcmd],
        }

    def to_yaml(self) -> str:
        """Render the document as YAML."""
        return yaml.safe_dump(self.to_dict(), sort_keys=False)


def _key(id: uuidlib.UUID | str) -> bytes:
    return (id if isinstance(id, uuidlib.UUID) else uuidlib.UUID(str(id))).bytes


def user_data(conn: sqlite3.Connection, id: uuidlib.UUID | str) -> str:
    """Mark the instance as running and return its stored user data."""
    key = _key(id)
    conn.execute("UPDATE instances SET status = ?1 WHERE uuid = ?2", ("running", key))
    instance = Instance.from_uuid(conn, id)
    record_audit(conn, "instance", "running", instance)
    row = conn.execute(
        "SELECT user_data FROM cloudconfig_seeds WHERE uuid = ?1", (key,)
    ).fetchone()
    if row is None:
        raise NotFound()
    return row[0]


def meta_data(conn: sqlite3.Connection, id: uuidlib.UUID | str) -> str:
    """Return the cloud-init meta-data document for an instance."""
    uid = id if isinstance(id, uuidlib.UUID) else uuidlib.UUID(str(id))
    row = conn.execute("SELECT name FROM instances WHERE uuid = ?1", (uid.bytes,)).fetchone()
    if row is None:
        raise NotFound()
    return f"instance-id: {uid}\nlocal-hostname: {row[0]}"


def tailnet_vendor_data(distro: str, auth_key: str) -> str:
    """Return vendor data that joins a new instance to the tailnet."""
    runcmd = [
        ["sh", "-c", "curl -fsSL https://tailscale.com/install.sh | sh"],
        ["systemctl", "enable", "--now", "tailscaled.service"],
    ]
    up = ["tailscale", "up", "--authkey", auth_key, "--ssh"]
    if distro in _TAGGED_DISTROS:
        runcmd.append(up + ["--advertise-tags=tag:vm"])
        runcmd.append(["apt", "install", "-y", "systemd-container"])
    else:
        runcmd.append(up)
    config = CloudConfig(
        write_files=[
            File(
                owner="root:root",
                path="/etc/update-motd.d/69-waifud",
                permissions="0755",
                content=_MOTD_CONTENT,
            )
        ],
        runcmd=runcmd,
    )
    return f"#cloud-config\n{config.to_yaml()}"