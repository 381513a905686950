"""Find the newest daily Ubuntu server cloud image."""

from __future__ import annotations

import logging
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup

from ..errors import Catchall
from ..models import Distro

log = logging.getLogger(__name__)

RELEASE_BASE = "http://cloud-images.ubuntu.com/daily/server/"
IMAGE_SUFFIX = "-server-cloudimg-amd64.img"
MIN_SIZE = 5
FORMAT = "waifud://qcow2"


def _get_text(session: requests.Session | None, url: str) -> str:
    http = session if session is not None else requests
    response = http.get(url)
    response.raise_for_status()
    return response.text


def _anchors(html: str) -> list:
    return BeautifulSoup(html, "html.parser").find_all("a")


def _parse_sums(text: str) -> dict[str, str]:
    sums: dict[str, str] = {}
    for line in text.split("\n"):
        sides = line.split(" *")
        if len(sides) != 2:
            log.error("Somehow this doesn't have two spaces in it %r", line)
            continue
        digest, filename = sides
        sums[filename] = digest
    return sums


def scrape(version: str, name: str, session: requests.Session | None = None) -> Distro:
    """Return the latest daily image of the release ``name`` (e.g. "jammy")."""
    base = f"{RELEASE_BASE}{name}/"
    log.debug("url: %s", base)

    anchors = list(reversed(_anchors(_get_text(session, base))))
    if len(anchors) < 3:
        raise Catchall("can't get second to last element of image list")
    href = anchors[2].get("href")
    if href is None:
        raise Catchall("link has no href, how???")

    release_url = urljoin(urljoin(base, name), href)
    log.debug("url: %s", release_url)

    images = [
        a.get("href")
        for a in _anchors(_get_text(session, release_url))
        if a.get("href") is not None and a.get("href").endswith(IMAGE_SUFFIX)
    ]
    if not images:
        raise Catchall(f"can't find an image for {name}")

    sums = _parse_sums(_get_text(session, urljoin(release_url, "SHA256SUMS")))
    shasum = sums.get(name + IMAGE_SUFFIX)
    if shasum is None:
        raise Catchall(f"can't find shasum for {name}")

    return Distro(
        name=f"ubuntu-{version}",
        download_url=urljoin(release_url, images[0]),
        sha256sum=shasum,
        min_size=MIN_SIZE,
        format=FORMAT,
    )