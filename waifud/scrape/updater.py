"""Collect the current upstream images and store them in the catalogue."""

from __future__ import annotations

import logging
import sqlite3
from typing import Callable, Iterable, TypeVar

import requests

from ..models import Distro, record_audit
from . import amazon_linux, arch, rocky_linux, ubuntu

log = logging.getLogger(__name__)

UBUNTU_RELEASES = (("22.04", "jammy"), ("20.04", "focal"), ("18.04", "bionic"))
ROCKY_VERSIONS = (8, 9)

T = TypeVar("T")


def _attempt(fn: Callable[[], T]) -> tuple[T | None, Exception | None]:
    try:
        return fn(), None
    except Exception as error:  # reported after the other scrapers have run
        return None, error


def get_all(session: requests.Session | None = None) -> list[Distro]:
    """Scrape every known distribution.

    The result lists Arch, Amazon Linux, the Ubuntu releases and then the
    Rocky Linux versions. The first failure is raised.
    """
    pending = [
        _attempt(lambda v=version, n=name: ubuntu.scrape(v, n, session))
        for version, name in UBUNTU_RELEASES
    ]
    pending += [
        _attempt(lambda v=version: rocky_linux.scrape(v, session)) for version in ROCKY_VERSIONS
    ]
    result = [arch.scrape(session), amazon_linux.scrape(session)]
    for distro, error in pending:
        if error is not None:
            raise error
        result.append(distro)
    return result


def update_distros(conn: sqlite3.Connection, distros: Iterable[Distro]) -> bool:
    """Update the stored distros in one transaction.

    Only distros already in the catalogue are changed. Returns whether the
    transaction was committed; on a database error it is rolled back and logged.
    """
    if not conn.in_transaction:
        conn.execute("BEGIN")
    for distro in distros:
        try:
            conn.execute(
                "UPDATE distros SET download_url = ?1, sha256sum = ?2, min_size = ?3, "
                "format = ?4 WHERE name = ?5",
                (distro.download_url, distro.sha256sum, distro.min_size, distro.format, distro.name),
            )
        except sqlite3.Error as why:
            log.error("can't update distros: %s", why)
            conn.rollback()
            return False
        try:
            record_audit(conn, "distro", "update", distro)
        except sqlite3.Error as why:
            log.error("can't update audit logs: %s", why)
            conn.rollback()
            return False
    try:
        conn.commit()
    except sqlite3.Error as why:
        log.error("can't commit transaction: %s", why)
        return False
    return True