"""Database records and queries."""

from __future__ import annotations

import json
import os
import sqlite3
import uuid as uuidlib
from dataclasses import dataclass
from typing import Any, Mapping

from .errors import NotFound

DEFAULT_DATABASE_URL = "./var/waifud.db"

_INSTANCE_COLUMNS = (
    "uuid, name, host, mac_address, memory, disk_size, zvol_name, status, distro, join_tailnet"
)
_DISTRO_COLUMNS = "name, download_url, sha256sum, min_size, format"
_AUDIT_COLUMNS = "id, ts, kind, op, data, uuid, name"


def establish_connection(database_url: str | os.PathLike | None = None) -> sqlite3.Connection:
    """Open the database named by the argument, ``DATABASE_URL`` or the default path."""
    if database_url is None:
        database_url = os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)
    return sqlite3.connect(database_url, isolation_level=None)


def _as_uuid(value: Any) -> uuidlib.UUID:
    if isinstance(value, uuidlib.UUID):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return uuidlib.UUID(bytes=bytes(value))
    return uuidlib.UUID(str(value))


def _require(data: Mapping[str, Any], key: str) -> Any:
    try:
        return data[key]
    except KeyError:
        raise ValueError(f"missing field `{key}`") from None


def record_audit(conn: sqlite3.Connection, kind: str, op: str, data: Any) -> int:
    """Append an audit log entry and return its id."""
    payload = data.to_dict() if hasattr(data, "to_dict") else data
    cur = conn.execute(
        "INSERT INTO audit_logs(kind, op, data) VALUES (?1, ?2, ?3)",
        (kind, op, json.dumps(payload)),
    )
    return cur.lastrowid


@dataclass
class Instance:
    """A virtual machine tracked by waifud."""

    uuid: uuidlib.UUID
    name: str
    host: str
    mac_address: str
    memory: int
    disk_size: int
    zvol_name: str
    status: str
    distro: str
    join_tailnet: bool

    @classmethod
    def _from_row(cls, row: tuple) -> "Instance":
        uid, name, host, mac, memory, disk, zvol, status, distro, join = row
        return cls(_as_uuid(uid), name, host, mac, memory, disk, zvol, status, distro, bool(join))

    @classmethod
    def _one(cls, conn: sqlite3.Connection, where: str, param: Any) -> "Instance":
        row = conn.execute(
            f"SELECT {_INSTANCE_COLUMNS} FROM instances WHERE {where} = ?1", (param,)
        ).fetchone()
        if row is None:
            raise NotFound()
        return cls._from_row(row)

    @classmethod
    def from_name(cls, conn: sqlite3.Connection, name: str) -> "Instance":
        """Look an instance up by name."""
        return cls._one(conn, "name", name)

    @classmethod
    def from_uuid(cls, conn: sqlite3.Connection, id: uuidlib.UUID | str) -> "Instance":
        """Look an instance up by its UUID."""
        return cls._one(conn, "uuid", _as_uuid(id).bytes)

    @classmethod
    def all(cls, conn: sqlite3.Connection) -> list["Instance"]:
        """Return every instance."""
        rows = conn.execute(f"SELECT {_INSTANCE_COLUMNS} FROM instances")
        return [cls._from_row(row) for row in rows]

    def to_dict(self) -> dict[str, Any]:
        return {
            "uuid": str(self.uuid),
            "name": self.name,
            "host": self.host,
            "mac_address": self.mac_address,
            "memory": self.memory,
            "disk_size": self.disk_size,
            "zvol_name": self.zvol_name,
            "status": self.status,
            "distro": self.distro,
            "join_tailnet": self.join_tailnet,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Instance":
        return cls(
            uuid=_as_uuid(_require(data, "uuid")),
            name=_require(data, "name"),
            host=_require(data, "host"),
            mac_address=_require(data, "mac_address"),
            memory=int(_require(data, "memory")),
            disk_size=int(_require(data, "disk_size")),
            zvol_name=_require(data, "zvol_name"),
            status=_require(data, "status"),
            distro=_require(data, "distro"),
            join_tailnet=bool(_require(data, "join_tailnet")),
        )


@dataclass
class CloudconfigSeed:
    """The cloud-init user data stored for an instance."""

    uuid: uuidlib.UUID
    user_data: str


@dataclass
class Distro:
    """A base distribution image."""

    name: str
    download_url: str
    sha256sum: str
    min_size: int
    format: str

    @classmethod
    def from_name(cls, conn: sqlite3.Connection, name: str) -> "Distro":
        """Look a distro up by name."""
        row = conn.execute(
            f"SELECT {_DISTRO_COLUMNS} FROM distros WHERE name = ?1", (name,)
        ).fetchone()
        if row is None:
            raise NotFound()
        return cls(*row)

    @classmethod
    def all(cls, conn: sqlite3.Connection) -> list["Distro"]:
        """Return every distro ordered by name."""
        rows = conn.execute(f"SELECT {_DISTRO_COLUMNS} FROM distros ORDER BY name ASC")
        return [cls(*row) for row in rows]

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "downloadURL": self.download_url,
            "sha256Sum": self.sha256sum,
            "minSize": self.min_size,
            "format": self.format,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Distro":
        return cls(
            name=_require(data, "name"),
            download_url=_require(data, "downloadURL"),
            sha256sum=_require(data, "sha256Sum"),
            min_size=int(_require(data, "minSize")),
            format=_require(data, "format"),
        )


@dataclass
class AuditEvent:
    """An entry of the audit log."""

    id: int
    ts: int
    kind: str
    op: str
    data: Any
    uuid: str | None
    name: str | None

    @classmethod
    def _from_row(cls, row: tuple) -> "AuditEvent":
        id_, ts, kind, op, data, uid, name = row
        if isinstance(data, str):
            data = json.loads(data)
        return cls(id_, ts, kind, op, data, uid, name)

    @classmethod
    def get_for_instance(
        cls, uuid: uuidlib.UUID | str, conn: sqlite3.Connection
    ) -> list["AuditEvent"]:
        """Return the instance events recorded for one instance."""
        rows = conn.execute(
            f"SELECT {_AUDIT_COLUMNS} FROM audit_logs WHERE uuid = ? AND kind = 'instance'",
            (str(_as_uuid(uuid)),),
        )
        return [cls._from_row(row) for row in rows]

    @classmethod
    def get_all(cls, conn: sqlite3.Connection) -> list["AuditEvent"]:
        """Return every audit event."""
        rows = conn.execute(f"SELECT {_AUDIT_COLUMNS} FROM audit_logs")
        return [cls._from_row(row) for row in rows]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "ts": self.ts,
            "kind": self.kind,
            "op": self.op,
            "data": self.data,
            "uuid": self.uuid,
            "name": self.name,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AuditEvent":
        return cls(
            id=int(_require(data, "id")),
            ts=int(_require(data, "ts")),
            kind=_require(data, "kind"),
            op=_require(data, "op"),
            data=data.get("data"),
            uuid=data.get("uuid"),
            name=data.get("name"),
        )


@dataclass
class Session:
    """A login session."""

    uuid: uuidlib.UUID
    user: str
    expired: bool

    @classmethod
    def get(cls, conn: sqlite3.Connection, id: uuidlib.UUID | str) -> "Session":
        """Look a session up by its UUID."""
        row = conn.execute(
            "SELECT uuid, user, expired FROM sessions WHERE uuid = ?1",
            (_as_uuid(id).bytes,),
        ).fetchone()
        if row is None:
            raise NotFound()
        uid, user, expired = row
        return cls(_as_uuid(uid), user, bool(expired))