"""Find the newest Rocky Linux generic cloud image."""

from __future__ import annotations

import logging
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup

from ..errors import Catchall
from ..models import Distro

log = logging.getLogger(__name__)

RELEASE_BASE = "http://download.rockylinux.org/pub/rocky/"
MIN_SIZE = 10
FORMAT = "waifud://qcow2"


def _get_text(session: requests.Session | None, url: str) -> str:
    http = session if session is not None else requests
    response = http.get(url)
    response.raise_for_status()
    return response.text


def _release_url(version: int) -> str:
    base = f"{RELEASE_BASE}{version}/images/"
    if version == 9:
        base += "x86_64/"
    return base


def _pick_image(html: str) -> str:
    anchors = BeautifulSoup(html, "html.parser").find_all("a")
    for anchor in reversed(anchors):
        href = anchor.get("href")
        if (
            href is not None
            and "x86_64" in href
            and "latest" not in href
            and href.endswith(".qcow2")
        ):
            return href
    raise Catchall("can't get second to last element of image list")


def _find_sum(checksums: str, link: str, version: int) -> str:
    if version != 8:
        checksums = "\n".join(line for line in checksums.split("\n") if "SHA256" in line)

    shasum = ""
    for line in (line for line in checksums.split("\n") if link in line):
        if line == "":
            break
        if version != 8:
            sides = line.split(" ")
            if len(sides) != 4:
                log.error("Somehow this doesn't have 3 spaces in it %r", line)
                continue
            shasum = sides[3]
        else:
            sides = line.split("  ")
            if len(sides) != 2:
                log.error("Somehow this doesn't have two spaces in it %r", line)
                continue
            shasum = sides[0]
    return shasum


def scrape(version: int, session: requests.Session | None = None) -> Distro:
    """Return the latest x86_64 cloud image of Rocky Linux ``version``."""
    base = _release_url(version)
    log.debug("url: %s", base)

    link = _pick_image(_get_text(session, base))
    image_url = urljoin(base, link)
    checksum_url = urljoin(image_url, "./CHECKSUM")
    log.debug("shasum url: %s", checksum_url)

    shasum = _find_sum(_get_text(session, checksum_url), link, version)

    return Distro(
        name=f"rocky-linux-{version}",
        download_url=image_url,
        sha256sum=shasum,
        min_size=MIN_SIZE,
        format=FORMAT,
    )