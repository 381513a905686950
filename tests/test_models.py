import uuid

import pytest

from waifud.errors import NotFound
from waifud.models import (
    AuditEvent,
    Distro,
    Instance,
    Session,
    establish_connection,
    record_audit,
)

SCHEMA = """
CREATE TABLE instances (
    uuid BLOB PRIMARY KEY, name TEXT UNIQUE, host TEXT, mac_address TEXT,
    memory INTEGER, disk_size INTEGER, zvol_name TEXT, status TEXT,
    distro TEXT, join_tailnet BOOLEAN
);
CREATE TABLE distros (
    name TEXT PRIMARY KEY, download_url TEXT, sha256sum TEXT,
    min_size INTEGER, format TEXT
);
CREATE TABLE audit_logs (
    id INTEGER PRIMARY KEY, ts INTEGER NOT NULL DEFAULT (strftime('%s','now')),
    kind TEXT, op TEXT, data TEXT, uuid TEXT, name TEXT
);
CREATE TABLE sessions (uuid BLOB PRIMARY KEY, user TEXT, expired BOOLEAN);
"""


@pytest.fixture
def conn():
    c = establish_connection(":memory:")
    c.executescript(SCHEMA)
    yield c
    c.close()


def make_instance(name="vm1"):
    return Instance(
        uuid=uuid.uuid4(),
        name=name,
        host="alpha",
        mac_address="52:54:00:aa:bb:01",
        memory=512,
        disk_size=5,
        zvol_name=f"rpool/safe/vms/{name}",
        status="init",
        distro="arch",
        join_tailnet=True,
    )


def insert_instance(conn, ins):
    conn.execute(
        "INSERT INTO instances VALUES (?,?,?,?,?,?,?,?,?,?)",
        (ins.uuid.bytes, ins.name, ins.host, ins.mac_address, ins.memory,
         ins.disk_size, ins.zvol_name, ins.status, ins.distro, ins.join_tailnet),
    )


def test_instance_from_uuid(conn):
    ins = make_instance()
    insert_instance(conn, ins)
    assert Instance.from_uuid(conn, ins.uuid) == ins
    assert Instance.from_uuid(conn, str(ins.uuid)) == ins


def test_instance_from_name(conn):
    ins = make_instance("waifu")
    insert_instance(conn, ins)
    assert Instance.from_name(conn, "waifu") == ins


def test_instance_missing(conn):
    with pytest.raises(NotFound):
        Instance.from_name(conn, "ghost")
    with pytest.raises(NotFound):
        Instance.from_uuid(conn, uuid.uuid4())


def test_instance_all(conn):
    first, second = make_instance("a"), make_instance("b")
    insert_instance(conn, first)
    insert_instance(conn, second)
    assert sorted(i.name for i in Instance.all(conn)) == ["a", "b"]


def test_instance_dict_round_trip():
    ins = make_instance()
    data = ins.to_dict()
    assert data["uuid"] == str(ins.uuid)
    assert Instance.from_dict(data) == ins


def test_instance_from_dict_missing_field():
    data = make_instance().to_dict()
    del data["host"]
    with pytest.raises(ValueError):
        Instance.from_dict(data)


def test_distro_lookup_and_order(conn):
    for name in ("ubuntu-22.04", "arch", "rocky-linux-9"):
        conn.execute(
            "INSERT INTO distros VALUES (?,?,?,?,?)",
            (name, "http://example.com/" + name, "abc", 5, "waifud://qcow2"),
        )
    names = [d.name for d in Distro.all(conn)]
    assert names == sorted(names)
    d = Distro.from_name(conn, "arch")
    assert d.download_url == "http://example.com/arch"
    with pytest.raises(NotFound):
        Distro.from_name(conn, "gentoo")


def test_distro_dict_keys():
    d = Distro("arch", "http://example.com/a", "abc", 2, "waifud://qcow2")
    data = d.to_dict()
    assert set(data) == {"name", "downloadURL", "sha256Sum", "minSize", "format"}
    assert Distro.from_dict(data) == d


def test_distro_from_dict_requires_format():
    with pytest.raises(ValueError):
        Distro.from_dict({"name": "x", "downloadURL": "u", "sha256Sum": "s", "minSize": 1})


def test_record_audit_and_get_all(conn):
    d = Distro("arch", "http://example.com/a", "abc", 2, "waifud://qcow2")
    record_audit(conn, "distro", "create", d)
    events = AuditEvent.get_all(conn)
    assert len(events) == 1
    assert events[0].kind == "distro"
    assert events[0].op == "create"
    assert events[0].data == d.to_dict()


def test_get_for_instance_filters(conn):
    target = uuid.uuid4()
    conn.execute(
        "INSERT INTO audit_logs(kind, op, data, uuid) VALUES ('instance', 'create', '{}', ?)",
        (str(target),),
    )
    conn.execute(
        "INSERT INTO audit_logs(kind, op, data, uuid) VALUES ('distro', 'create', '{}', ?)",
        (str(target),),
    )
    conn.execute(
        "INSERT INTO audit_logs(kind, op, data, uuid) VALUES ('instance', 'create', '{}', ?)",
        (str(uuid.uuid4()),),
    )
    events = AuditEvent.get_for_instance(target, conn)
    assert [(e.kind, e.uuid) for e in events] == [("instance", str(target))]


def test_audit_event_dict_round_trip():
    ev = AuditEvent(1, 100, "instance", "start", {"a": 1}, None, "vm")
    assert AuditEvent.from_dict(ev.to_dict()) == ev


def test_session_get(conn):
    sid = uuid.uuid4()
    conn.execute("INSERT INTO sessions VALUES (?, ?, ?)", (sid.bytes, "cadey", 0))
    assert Session.get(conn, sid) == Session(sid, "cadey", False)
    with pytest.raises(NotFound):
        Session.get(conn, uuid.uuid4())


def test_establish_connection_env(tmp_path, monkeypatch):
    path = tmp_path / "db.sqlite"
    monkeypatch.setenv("DATABASE_URL", str(path))
    c = establish_connection()
    c.execute("CREATE TABLE t (x INTEGER)")
    c.execute("INSERT INTO t VALUES (42)")
    c.commit()
    assert c.execute("SELECT x FROM t").fetchall() == [(42,)]
    c.close()
    assert path.exists()
    reopened = establish_connection(str(path))
    assert reopened.execute("SELECT x FROM t").fetchall() == [(42,)]
    reopened.close()