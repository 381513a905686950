"""Operations on the distribution image catalogue."""

from __future__ import annotations

import dataclasses
import sqlite3

from ..models import Distro, record_audit

DEFAULT_FORMAT = "waifud://qcow2"


def _with_default_format(distro: Distro) -> Distro:
    if distro.format == "":
        return dataclasses.replace(distro, format=DEFAULT_FORMAT)
    return dataclasses.replace(distro)


def create(conn: sqlite3.Connection, distro: Distro) -> Distro:
    """Add a new distro and return it as stored."""
    distro = _with_default_format(distro)
    conn.execute(
        "INSERT INTO distros(name, download_url, sha256sum, min_size, format) "
        "VALUES (?1, ?2, ?3, ?4, ?5)",
        (distro.name, distro.download_url, distro.sha256sum, distro.min_size, distro.format),
    )
    record_audit(conn, "distro", "create", distro)
    return distro


def update(conn: sqlite3.Connection, name: str, distro: Distro) -> Distro:
    """Insert or replace the distro named in ``distro``.

    The record is keyed by the distro's own name; ``name`` is the one the
    request was addressed to.
    """
    distro = _with_default_format(distro)
    conn.execute(
        """
INSERT INTO
  distros( name
         , download_url
         , sha256sum
         , min_size
         , format
         )
VALUES ( ?5
       , ?1
       , ?2
       , ?3
       , ?4
       )
ON CONFLICT(name) DO
  UPDATE SET download_url=?1
           , sha256sum=?2
           , min_size=?3
           , format=?4
""",
        (distro.download_url, distro.sha256sum, distro.min_size, distro.format, distro.name),
    )
    record_audit(conn, "distro", "update", distro)
    return distro


def delete(conn: sqlite3.Connection, name: str) -> None:
    """Remove a distro; raises NotFound if there is none by that name."""
    distro = Distro.from_name(conn, name)
    conn.execute("DELETE FROM distros WHERE name = ?1", (distro.name,))
    record_audit(conn, "distro", "update", distro)


def get(conn: sqlite3.Connection, name: str) -> Distro:
    """Return the distro with the given name."""
    return Distro.from_name(conn, name)


def list_distros(conn: sqlite3.Connection) -> list[Distro]:
    """Return every distro ordered by name."""
    return Distro.all(conn)