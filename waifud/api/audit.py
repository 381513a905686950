"""Read access to the audit log."""

from __future__ import annotations

import sqlite3
import uuid as uuidlib

from ..models import AuditEvent


def list_all(conn: sqlite3.Connection) -> list[AuditEvent]:
    """Return every audit event."""
    return AuditEvent.get_all(conn)


def list_for_instance(conn: sqlite3.Connection, id: uuidlib.UUID | str) -> list[AuditEvent]:
    """Return the instance events recorded for one instance."""
    return AuditEvent.get_for_instance(id, conn)