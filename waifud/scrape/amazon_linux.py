"""Find the newest Amazon Linux 2 KVM image."""

from __future__ import annotations

import logging
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup

from ..errors import Catchall
from ..models import Distro

log = logging.getLogger(__name__)

LATEST_URL = "https://cdn.amazonlinux.com/os-images/latest/kvm/"
IMAGE_PREFIX = "amzn2-kvm"
MIN_SIZE = 25
FORMAT = "waifud://qcow2"


def _get_text(session: requests.Session | None, url: str) -> str:
    http = session if session is not None else requests
    response = http.get(url)
    response.raise_for_status()
    return response.text


def scrape(session: requests.Session | None = None) -> Distro:
    """Return the image that the "latest" Amazon Linux link redirects to."""
    http = session if session is not None else requests
    redirect = http.get(LATEST_URL, allow_redirects=False)
    location = redirect.headers.get("Location")
    if location is None:
        raise Catchall("why did the redirect not work?")
    release_base = urljoin(LATEST_URL, location)

    anchors = BeautifulSoup(_get_text(session, release_base), "html.parser").find_all("a")
    link = next(
        (
            a.get("href")
            for a in anchors
            if a.get("href") is not None and a.get("href").startswith(IMAGE_PREFIX)
        ),
        None,
    )
    if link is None:
        raise Catchall("can't get last element of Amazon Linux image list")

    shasum = _get_text(session, urljoin(release_base, "SHA256SUMS")).split("  ")[0]

    return Distro(
        name="amazon-linux-2",
        download_url=urljoin(release_base, link),
        sha256sum=shasum,
        min_size=MIN_SIZE,
        format=FORMAT,
    )