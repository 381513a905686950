"""Find the newest Arch Linux cloud image."""

from __future__ import annotations

import logging
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup

from ..errors import Catchall
from ..models import Distro

log = logging.getLogger(__name__)

RELEASE_BASE = "https://geo.mirror.pkgbuild.com/images/"
IMAGE_PREFIX = "Arch-Linux-x86_64-cloudimg-"
MIN_SIZE = 2
FORMAT = "waifud://qcow2"


def _get_text(session: requests.Session | None, url: str) -> str:
    http = session if session is not None else requests
    response = http.get(url)
    response.raise_for_status()
    return response.text


def _anchors(html: str) -> list:
    return BeautifulSoup(html, "html.parser").find_all("a")


def scrape(session: requests.Session | None = None) -> Distro:
    """Return the latest Arch Linux cloud image."""
    anchors = _anchors(_get_text(session, RELEASE_BASE))
    if not anchors:
        raise Catchall("can't get last element of Arch image list")
    href = anchors[-1].get("href")
    if href is None:
        raise Catchall("link has no href, how???")

    release_url = urljoin(RELEASE_BASE, href)

    links = [
        a.get("href")
        for a in _anchors(_get_text(session, release_url))
        if a.get("href") is not None and a.get("href").startswith(IMAGE_PREFIX)
    ]
    if len(links) != 4:
        raise Catchall("wrong number of things in the list, wanted 4")

    image, shasum_file = links[0], links[1]
    shasum = _get_text(session, urljoin(release_url, shasum_file)).split("  ")[0]

    return Distro(
        name="arch",
        download_url=urljoin(release_url, image),
        sha256sum=shasum,
        min_size=MIN_SIZE,
        format=FORMAT,
    )