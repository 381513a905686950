"""HTML pages of the administration panel."""

from __future__ import annotations

import sqlite3
import uuid as uuidlib
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple

from .api.machines import Machine
from .models import Distro, Instance

Crumb = Tuple[str, Optional[str]]

_DOCTYPE = "<!DOCTYPE html>"
_FAVICON = (
    "data:image/svg+xml,<svg xmlns=%22http://www.w3.org/2000/svg%22 "
    "viewBox=%220 0 100 100%22><text y=%22.9em%22 font-size=%2290%22>🔥</text></svg>"
)


@dataclass
class User:
    """The signed-in user shown in the page header."""

    login_name: str
    display_name: str
    profile_pic_url: str


def _e(value: object) -> str:
    """Escape text for use in HTML content or attribute values."""
    return (
        str(value)
        .replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def import_js(name: str) -> str:
    """Return a script tag that loads the page module ``name`` into ``#app``."""
    return f"""<script type ="module">
import {{ Page }} from "/static/js/{name}";

const g = (name) => document.getElementById(name);
const r = (callback) => window.addEventListener("DOMContentLoaded", callback);
const x = (elem) => {{
    while (elem.lastChild) {{
        elem.removeChild(elem.lastChild);
    }}
}};

r(async () => {{
  const page = await Page();
  const root = g("app");
  x(root);
  root.appendChild(page);
}});
</script>"""


def _user_badge(user: User) -> str:
    return (
        f'<div class="right">{_e(user.display_name)} '
        f'<img style="width:32px;height:32px" src="{_e(user.profile_pic_url)}"></div>'
    )


def _crumb_item(name: str, link: Optional[str]) -> str:
    if link is not None:
        return f'<li><a href="{_e(link)}">{_e(name)}</a></li>'
    return f'<li><span aria-current="page">{_e(name)}</span></li>'


def base(
    title: Optional[str],
    crumbs: Optional[Sequence[Crumb]],
    user: User,
    body: str,
) -> str:
    """Wrap already rendered HTML ``body`` in the common page layout."""
    page_title = title if title is not None else "waifud"
    full_title = f"{title} - waifud" if title is not None else "waifud"

    if crumbs is not None:
        items = "".join(_crumb_item(name, link) for name, link in crumbs)
        nav = (
            f'<nav class="breadcrumb nav">{_user_badge(user)}'
            f'<ul><li><a href="/admin">waifud</a></li>{items}</ul></nav>'
        )
    else:
        nav = (
            f'<nav class="nav">{_user_badge(user)}'
            '<a href="/admin">waifud</a> '
            '<a href="/admin/distros">Distros</a> '
            '<a href="/admin/instances">Instances</a></nav>'
        )

    return (
        f"{_DOCTYPE}<html><head>"
        '<meta charset="utf-8">'
        f"<title>{_e(full_title)}</title>"
        '<meta name="viewport" content="width=device-width, initial-scale=1.0">'
        f'<link rel="icon" href="{_e(_FAVICON)}">'
        '<link rel="stylesheet" type="text/css" href="/static/css/xess.css">'
        '</head><body class="top"><main>'
        f"{nav}<br><h1>{_e(page_title)}</h1><br>{body}<hr>"
        '<footer><p>Powered with dokis by <a href="/admin">waifud</a>. ❤️</p></footer>'
        "</main></body></html>"
    )


def instance_create_page(user: User) -> str:
    """Render the page for creating an instance."""
    return base(
        "Create instance",
        [("Instances", "/admin/instances"), ("Create", None)],
        user,
        import_js("instance_create.js") + '<div id="app">Loading...</div>',
    )


def _row(header: str, cell: str, cell_id: Optional[str] = None) -> str:
    id_attr = f' id="{_e(cell_id)}"' if cell_id else ""
    return f"<tr><th>{_e(header)}</th><td{id_attr}>{cell}</td></tr>"


def instance_page(
    conn: sqlite3.Connection,
    user: User,
    id: uuidlib.UUID | str,
    machine: Optional[Machine],
) -> str:
    """Render the detail page of one instance.

    ``machine`` is what libvirt reports for the instance, if it could be found.
    """
    instance = Instance.from_uuid(conn, id)
    address = ""
    if machine is not None:
        address = _e(machine.addr or "")
    rows = "".join(
        [
            _row("Status", _e(instance.status)),
            _row("IP Address", address),
            _row("Host", _e(instance.host)),
            _row("Memory", f"{_e(instance.memory)} MB"),
            _row("Disk size", f"{_e(instance.disk_size)} GB"),
            _row("ZVol name", _e(instance.zvol_name)),
            _row("Distro", _e(instance.distro)),
            _row("UUID", _e(instance.uuid), cell_id="instance_id"),
        ]
    )
    body = (
        import_js("instance_detail.js")
        + f"<table>{rows}</table>"
        + '<h2>Quick Actions</h2><div id="app">Loading...</div>'
    )
    return base(
        instance.name,
        [("Instances", "/admin/instances"), (instance.name, None)],
        user,
        body,
    )


def _instance_rows(instances: Iterable[Instance]) -> str:
    return "".join(
        "<tr>"
        f'<td><a href="/admin/instances/{_e(i.uuid)}">{_e(i.name)}</a></td>'
        f"<td>{_e(i.host)}</td>"
        f"<td>{_e(i.memory)} MB</td>"
        f"<td>{_e(i.disk_size)} GB</td>"
        f"<td>{_e(i.distro)}</td>"
        f"<td>{_e(i.status)}</td>"
        "</tr>"
        for i in instances
    )


def instances_page(conn: sqlite3.Connection, user: User) -> str:
    """Render the list of all instances."""
    body = (
        '<p><a href="/admin/instances/create">Create a new instance</a></p>'
        "<table><tr><th>Name</th><th>Host</th><th>Memory</th><th>Disk</th>"
        "<th>Distro</th><th>Status</th></tr>"
        f"{_instance_rows(Instance.all(conn))}</table>"
    )
    return base("Instances", [("Instances", None)], user, body)


_HOME_QUERY = """
WITH distro_count    ( val ) AS ( SELECT COUNT(*) FROM distros )
   , instance_count  ( val ) AS ( SELECT COUNT(*) FROM instances )
   , instance_memory ( amt ) AS ( SELECT SUM(memory) FROM instances )
SELECT dc.val AS distros
     , ic.val AS instances
     , im.amt AS ram_use
FROM distro_count    dc
   , instance_count  ic
   , instance_memory im
"""


def home_page(conn: sqlite3.Connection, user: User) -> str:
    """Render the overview page with distro, instance and memory totals."""
    distro_count, instance_count, total_memory = conn.execute(_HOME_QUERY).fetchone()
    body = (
        f"<p>Hello {_e(user.login_name)}! I am tracking {distro_count} distribution image"
        f"{'s' if distro_count != 1 else ''}, {instance_count} VM instance"
        f"{'s' if instance_count != 1 else ''} that use a total of "
        f"{total_memory or 0} megabytes of RAM.</p>"
        '<p><a href="/admin/instances/create">Create a new instance</a></p>'
    )
    return base("Home", None, user, body)


def distro_list_page(conn: sqlite3.Connection, user: User) -> str:
    """Render the list of distros with their minimum disk sizes."""
    rows = "".join(
        f"<tr><td>{_e(d.name)}</td><td>{_e(d.min_size)}</td></tr>"
        for d in Distro.all(conn)
    )
    body = f"<table><tr><th>Name</th><th>Min. Size (gb)</th></tr>{rows}</table>"
    return base("Distros", [("Distros", None)], user, body)


_FILLER = (
    "I'm baby tonx narwhal ennui crucifix taiyaki yr farm-to-table lomo locavore "
    "chillwave next level. Af palo santo bicycle rights try-hard gentrify jianbing viral "
    "heirloom actually sartorial fashion axe pickled artisan selvage cred. Celiac hammock "
    "sriracha yes plz, fit migas semiotics bruh shabby chic gluten-free chambray portland "
    "pug. Vice activated charcoal cornhole messenger bag enamel pin, put a bird on it blog "
    "ascot kale chips green juice sartorial twee retro. Try-hard hashtag umami leggings "
    "tote bag chillwave.",
    "Migas trust fund sriracha pop-up occupy. Chicharrones meggings bruh green juice "
    "squid. Brunch ennui umami fit gastropub 8-bit dreamcatcher. Bespoke portland pork "
    "belly vegan direct trade shoreditch austin franzen same +1 hoodie sustainable pickled "
    "celiac succulents. Lo-fi squid pok pok, chillwave master cleanse DIY tbh enamel pin "
    "gastropub iPhone yes plz lyft actually lumbersexual.",
    "Next level gastropub intelligentsia flannel tote bag, pug tilde lumbersexual poke "
    "mustache occupy. Seitan viral poutine messenger bag, echo park wayfarers af bruh poke "
    "distillery jianbing. Chillwave activated charcoal +1, disrupt shoreditch swag "
    "humblebrag lyft bushwick readymade same taxidermy kickstarter cold-pressed unicorn. "
    "Organic cloud bread polaroid tacos listicle man braid poutine chia skateboard fixie.",
)


def test_page(user: User) -> str:
    """Render a page of filler text for checking the layout."""
    first, second, third = (_e(p) for p in _FILLER)
    body = (
        f"<p>{first}</p><h2>Lumbersexual polaroid</h2>"
        f"<p>{second}</p><p>{third}</p>"
    )
    return base("Test Page lol", None, user, body)