"""HTTP client for the waifud API."""

from __future__ import annotations

import uuid as uuidlib
from typing import Any
from urllib.parse import quote, urlsplit, urlunsplit

import requests

from .api.machines import Machine
from .libvirt import NewInstance
from .models import AuditEvent, Distro, Instance

APPLICATION_NAME = "waifud/0.1.0"
CONNECT_TIMEOUT = 0.5


class Client:
    """A connection to a waifud server."""

    def __init__(self, base_url: str) -> None:
        parts = urlsplit(base_url)
        if not parts.scheme or not parts.netloc:
            raise ValueError(f"invalid base URL: {base_url!r}")
        self._base = parts
        self._session = requests.Session()
        self._session.headers["User-Agent"] = APPLICATION_NAME

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _url(self, path: str) -> str:
        return urlunsplit(self._base._replace(path=quote(path, safe="/:@")))

    def _request(self, method: str, path: str, body: Any = None) -> requests.Response:
        response = self._session.request(
            method,
            self._url(path),
            json=body,
            timeout=(CONNECT_TIMEOUT, None),
        )
        response.raise_for_status()
        return response

    def _json(self, method: str, path: str, body: Any = None) -> Any:
        return self._request(method, path, body).json()

    def audit_logs(self) -> list[AuditEvent]:
        return [AuditEvent.from_dict(e) for e in self._json("GET", "/api/v1/auditlogs")]

    def create_instance(self, ni: NewInstance) -> Instance:
        return Instance.from_dict(self._json("POST", "/api/v1/instances", ni.to_dict()))

    def delete_instance(self, id: uuidlib.UUID | str) -> None:
        self._request("DELETE", f"/api/v1/instances/{id}")

    def reinit_instance(self, id: uuidlib.UUID | str) -> None:
        self._request("POST", f"/api/v1/instances/{id}/reinit")

    def list_instances(self) -> list[Instance]:
        return [Instance.from_dict(i) for i in self._json("GET", "/api/v1/instances")]

    def get_instance(self, id: uuidlib.UUID | str) -> Instance:
        return Instance.from_dict(self._json("GET", f"/api/v1/instances/{id}"))

    def get_instance_by_name(self, name: str) -> Instance:
        return Instance.from_dict(self._json("GET", f"/api/v1/instances/name/{name}"))

    def get_instance_machine(self, id: uuidlib.UUID | str) -> Machine:
        return Machine.from_dict(self._json("GET", f"/api/v1/instances/{id}/machine"))

    def shutdown_instance(self, id: uuidlib.UUID | str) -> None:
        self._request("POST", f"/api/v1/instances/{id}/shutdown")

    def start_instance(self, id: uuidlib.UUID | str) -> None:
        self._request("POST", f"/api/v1/instances/{id}/start")

    def hard_reboot_instance(self, id: uuidlib.UUID | str) -> None:
        self._request("POST", f"/api/v1/instances/{id}/hardreboot")

    def reboot_instance(self, id: uuidlib.UUID | str) -> None:
        self._request("POST", f"/api/v1/instances/{id}/reboot")

    def create_distro(self, d: Distro) -> Distro:
        return Distro.from_dict(self._json("POST", "/api/v1/distros", d.to_dict()))

    def list_distros(self) -> list[Distro]:
        return [Distro.from_dict(d) for d in self._json("GET", "/api/v1/distros")]

    def update_distro(self, d: Distro) -> Distro:
        return Distro.from_dict(self._json("POST", f"/api/v1/distros/{d.name}", d.to_dict()))

    def get_distro(self, name: str) -> Distro:
        return Distro.from_dict(self._json("GET", f"/api/v1/distros/{name}"))

    def delete_distro(self, name: str) -> None:
        self._request("DELETE", f"/api/v1/distros/{name}")