"""Errors raised by waifud and their mapping onto HTTP responses."""

from __future__ import annotations

import sqlite3
from http import HTTPStatus


class WaifudError(Exception):
    """Base class for every application error."""

    status: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR

    @property
    def body(self) -> str:
        """Text sent to an HTTP client for this error."""
        return str(self)


class Catchall(WaifudError):
    """An error that fits no other category."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"other error: {message}")


class HostDoesntExist(WaifudError):
    """The named virtualisation host cannot be resolved."""

    def __init__(self, host: str) -> None:
        self.host = host
        super().__init__(f"host {host} doesn't exist")


class InstanceDoesntExist(WaifudError):
    """No instance with the given name exists."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"instance {name} doesn't exist")


class CantDownloadImage(WaifudError):
    """A distribution image could not be downloaded."""

    def __init__(self, url: str, stderr: str) -> None:
        self.url = url
        self.stderr = stderr
        super().__init__(f"can't download {url}:\n\n{stderr}")


class _HostCommandError(WaifudError):
    _action = ""

    def __init__(self, host: str, stderr: str) -> None:
        self.host = host
        self.stderr = stderr
        super().__init__(f"can't {self._action} on {host}:\n\n{stderr}")


class CantMakeZvol(_HostCommandError):
    """Creating a zfs zvol failed."""

    _action = "create zfs zvol"


class CantDeleteZvol(_HostCommandError):
    """Deleting a zfs zvol failed."""

    _action = "delete zfs zvol"


class CantHydrateZvol(_HostCommandError):
    """Writing the base image into a zvol failed."""

    _action = "hydrate zfs zvol"


class CantMakeInitSnapshot(_HostCommandError):
    """Taking the initial zfs snapshot failed."""

    _action = "create zfs init snapshot"


class CantRollbackZvol(WaifudError):
    """Rolling a zvol back to a snapshot failed."""

    def __init__(self, host: str, snapshot: str, stderr: str) -> None:
        self.host = host
        self.snapshot = snapshot
        self.stderr = stderr
        super().__init__(
            f"can't rollback zfs zvol to snapshot {snapshot} on {host}:\n\n{stderr}"
        )


class BadMiddlewareStack(WaifudError):
    """The request lacked data that the middleware should have supplied."""

    def __init__(self) -> None:
        super().__init__("internal middleware logic error")


class Unauthorized(WaifudError):
    """The caller may not perform the requested action."""

    status = HTTPStatus.UNAUTHORIZED

    def __init__(self) -> None:
        super().__init__("insufficient authorization to perform this action")

    @property
    def body(self) -> str:
        return "you lack authorization"


class CantMakeToken(WaifudError):
    """An authentication token could not be made."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"can't make token: {reason}")


class NotFound(WaifudError):
    """A database lookup returned no rows."""

    status = HTTPStatus.NOT_FOUND

    def __init__(self) -> None:
        super().__init__("database error: Query returned no rows")

    @property
    def body(self) -> str:
        return "404 not found"


def status_for(error: BaseException) -> tuple[HTTPStatus, str]:
    """Return the HTTP status and response body describing ``error``."""
    if isinstance(error, WaifudError):
        return error.status, error.body
    if isinstance(error, sqlite3.Error):
        return HTTPStatus.INTERNAL_SERVER_ERROR, f"database error: {error}"
    return HTTPStatus.INTERNAL_SERVER_ERROR, str(error)