import json
import uuid

import pytest
import yaml

from waifud.api.cloudinit import (
    CloudConfig,
    File,
    meta_data,
    tailnet_vendor_data,
    user_data,
)
from waifud.errors import NotFound
from waifud.models import Instance, establish_connection

SCHEMA = """
CREATE TABLE instances (
    uuid BLOB PRIMARY KEY,
    name TEXT NOT NULL,
    host TEXT NOT NULL,
    mac_address TEXT NOT NULL,
    memory INTEGER NOT NULL,
    disk_size INTEGER NOT NULL,
    zvol_name TEXT NOT NULL,
    status TEXT NOT NULL,
    distro TEXT NOT NULL,
    join_tailnet BOOLEAN NOT NULL
);
CREATE TABLE cloudconfig_seeds (uuid BLOB PRIMARY KEY, user_data TEXT NOT NULL);
CREATE TABLE audit_logs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    ts INTEGER NOT NULL DEFAULT (strftime('%s', 'now')),
    kind TEXT NOT NULL,
    op TEXT NOT NULL,
    data TEXT,
    uuid TEXT,
    name TEXT
);
"""

ID = uuid.UUID("00000000-0000-4000-8000-00000000000a")


@pytest.fixture
def conn():
    c = establish_connection(":memory:")
    c.executescript(SCHEMA)
    c.execute(
        "INSERT INTO instances VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
        (ID.bytes, "alpha", "hostbox", "02:00:00:00:00:01", 512, 5,
         "rpool/safe/vms/alpha", "init", "arch", 0),
    )
    yield c
    c.close()


def seed(conn, text="#cloud-config\n"):
    conn.execute("INSERT INTO cloudconfig_seeds VALUES (?, ?)", (ID.bytes, text))


def test_user_data_returns_seed_and_marks_running(conn):
    seed(conn, "#cloud-config\npackages: [vim]\n")
    assert user_data(conn, ID) == "#cloud-config\npackages: [vim]\n"
    assert Instance.from_uuid(conn, ID).status == "running"


def test_user_data_records_audit(conn):
    seed(conn)
    user_data(conn, str(ID))
    kind, op, data = conn.execute("SELECT kind, op, data FROM audit_logs").fetchone()
    assert (kind, op) == ("instance", "running")
    assert json.loads(data) == Instance.from_uuid(conn, ID).to_dict()


def test_user_data_without_seed_raises(conn):
    with pytest.raises(NotFound):
        user_data(conn, ID)


def test_user_data_unknown_instance_raises(conn):
    with pytest.raises(NotFound):
        user_data(conn, uuid.uuid4())


def test_meta_data_format(conn):
    assert meta_data(conn, ID) == f"instance-id: {ID}\nlocal-hostname: alpha"


def test_meta_data_unknown_instance_raises(conn):
    with pytest.raises(NotFound):
        meta_data(conn, uuid.uuid4())


def parse(doc):
    assert doc.startswith("#cloud-config\n")
    return yaml.safe_load(doc[len("#cloud-config\n"):])


def test_vendor_data_ubuntu_adds_tags_and_container():
    data = parse(tailnet_vendor_data("ubuntu-22.04", "token"))
    assert len(data["runcmd"]) == 4
    assert data["runcmd"][2] == [
        "tailscale", "up", "--authkey", "token", "--ssh", "--advertise-tags=tag:vm"
    ]
    assert data["runcmd"][3] == ["apt", "install", "-y", "systemd-container"]


def test_vendor_data_other_distro():
    data = parse(tailnet_vendor_data("arch", "token"))
    assert data["runcmd"][-1] == ["tailscale", "up", "--authkey", "token", "--ssh"]
    assert len(data["runcmd"]) == 3
    files = data["write_files"]
    assert [f["path"] for f in files] == ["/etc/update-motd.d/69-waifud"]
    assert files[0]["owner"] == "root:root"
    assert files[0]["permissions"] == "0755"
    assert "Welcome to waifud <3" in files[0]["content"]


def test_cloud_config_yaml_round_trip():
    cfg = CloudConfig(
        write_files=[File("root:root", "/etc/motd", "0644", "hi\n")],
        runcmd=[["echo", "hello"]],
    )
    assert yaml.safe_load(cfg.to_yaml()) == cfg.to_dict()
    assert list(cfg.to_dict()) == ["write_files", "runcmd"]