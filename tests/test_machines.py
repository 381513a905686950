import pytest

from waifud.api.machines import Machine, libvirt_uri


def sample():
    return Machine(
        name="alpha",
        host="hostbox",
        active=True,
        uuid="00000000-0000-4000-8000-000000000001",
        addr="10.0.0.5",
        memory_megs=512,
        cpus=2,
    )


def test_libvirt_uri():
    assert libvirt_uri("hostbox") == "qemu+ssh://root@hostbox/system"


def test_round_trip():
    m = sample()
    assert Machine.from_dict(m.to_dict()) == m


def test_to_dict_keys():
    assert set(sample().to_dict()) == {
        "name", "host", "active", "uuid", "addr", "memory_megs", "cpus"
    }


def test_missing_addr_is_none():
    data = sample().to_dict()
    del data["addr"]
    assert Machine.from_dict(data).addr is None
    assert Machine.from_dict(data).name == "alpha"


def test_missing_required_field_raises():
    data = sample().to_dict()
    del data["host"]
    with pytest.raises(ValueError, match="host"):
        Machine.from_dict(data)


def test_negative_memory_rejected():
    data = sample().to_dict()
    data["memory_megs"] = -1
    with pytest.raises(ValueError):
        Machine.from_dict(data)


def test_default_machine_is_inactive():
    m = Machine()
    assert m.active is False
    assert m.addr is None
    assert m.memory_megs == 0