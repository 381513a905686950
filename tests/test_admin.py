import sqlite3
import uuid

import pytest

from waifud.admin import (
    User,
    base,
    distro_list_page,
    home_page,
    import_js,
    instance_create_page,
    instance_page,
    instances_page,
    test_page as render_test_page,
)
from waifud.api.machines import Machine
from waifud.errors import NotFound


@pytest.fixture
def conn():
    db = sqlite3.connect(":memory:", isolation_level=None)
    db.executescript(
        """
        CREATE TABLE instances (
            uuid BLOB PRIMARY KEY, name TEXT, host TEXT, mac_address TEXT,
            memory INTEGER, disk_size INTEGER, zvol_name TEXT, status TEXT,
            distro TEXT, join_tailnet INTEGER
        );
        CREATE TABLE distros (
            name TEXT PRIMARY KEY, download_url TEXT, sha256sum TEXT,
            min_size INTEGER, format TEXT
        );
        """
    )
    yield db
    db.close()


@pytest.fixture
def user():
    return User(
        login_name="alice@example.com",
        display_name="Alice <Admin>",
        profile_pic_url="/static/alice.png",
    )


def add_instance(conn, name="vm-one", memory=512, status="running"):
    uid = uuid.uuid4()
    conn.execute(
        "INSERT INTO instances VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
        (uid.bytes, name, "hostbox", "02:00:00:00:00:01", memory, 10,
         f"rpool/vms/{name}", status, "arch", 0),
    )
    return uid


def add_distro(conn, name, min_size):
    conn.execute(
        "INSERT INTO distros VALUES (?, ?, ?, ?, ?)",
        (name, "http://mirror.test/img.qcow2", "abc", min_size, "waifud://qcow2"),
    )


def test_import_js_embeds_module_path():
    script = import_js("instance_create.js")
    assert 'from "/static/js/instance_create.js"' in script
    assert script.startswith('<script type ="module">')
    assert script.endswith("</script>")


def test_base_without_crumbs_has_main_nav(user):
    page = base(None, None, user, "<p>body</p>")
    assert page.startswith("<!DOCTYPE html>")
    assert "<title>waifud</title>" in page
    assert '<a href="/admin/distros">Distros</a>' in page
    assert "<p>body</p>" in page


def test_base_with_crumbs_and_title(user):
    page = base("Things", [("Instances", "/admin/instances"), ("Create", None)], user, "")
    assert "<title>Things - waifud</title>" in page
    assert "<h1>Things</h1>" in page
    assert '<a href="/admin/instances">Instances</a>' in page
    assert '<span aria-current="page">Create</span>' in page
    assert "breadcrumb" in page


def test_base_escapes_user_text(user):
    page = base("a<b", None, user, "")
    assert "Alice &lt;Admin&gt;" in page
    assert "Alice <Admin>" not in page
    assert "<h1>a&lt;b</h1>" in page


def test_instance_create_page(user):
    page = instance_create_page(user)
    assert "instance_create.js" in page
    assert "Loading..." in page
    assert "<title>Create instance - waifud</title>" in page


def test_instance_page_lists_details(conn, user):
    uid = add_instance(conn, name="web")
    machine = Machine(name="web", host="hostbox", active=True, uuid=str(uid), addr="10.0.0.5")
    page = instance_page(conn, user, uid, machine)
    assert "10.0.0.5" in page
    assert f'<td id="instance_id">{uid}</td>' in page
    assert "rpool/vms/web" in page
    assert "instance_detail.js" in page


def test_instance_page_without_machine(conn, user):
    uid = add_instance(conn, name="web")
    page = instance_page(conn, user, uid, None)
    assert "<tr><th>IP Address</th><td></td></tr>" in page


def test_instance_page_missing_instance(conn, user):
    with pytest.raises(NotFound):
        instance_page(conn, user, uuid.uuid4(), None)


def test_instances_page_links_each_instance(conn, user):
    first = add_instance(conn, name="alpha")
    second = add_instance(conn, name="beta")
    page = instances_page(conn, user)
    assert f'href="/admin/instances/{first}">alpha<' in page
    assert f'href="/admin/instances/{second}">beta<' in page


def test_home_page_empty_uses_plurals(conn, user):
    page = home_page(conn, user)
    assert "distribution images" in page
    assert "VM instances" in page
    assert "a total of 0 megabytes of RAM." in page
    assert "Hello alice@example.com!" in page


def test_home_page_singular_counts_and_memory(conn, user):
    add_distro(conn, "arch", 2)
    add_instance(conn, name="one", memory=768)
    page = home_page(conn, user)
    assert "distribution image," in page
    assert "VM instance that" in page
    assert "a total of 768 megabytes" in page


def test_distro_list_page_sorted(conn, user):
    add_distro(conn, "zeta", 9)
    add_distro(conn, "alpha", 3)
    page = distro_list_page(conn, user)
    assert page.index("<td>alpha</td>") < page.index("<td>zeta</td>")
    assert "<td>alpha</td><td>3</td>" in page


def test_test_page_title(user):
    page = render_test_page(user)
    assert "<h1>Test Page lol</h1>" in page
    assert "<h2>Lumbersexual polaroid</h2>" in page