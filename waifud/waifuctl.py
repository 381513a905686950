"""Command line tool for managing VM instances on a waifud server."""

from __future__ import annotations

import argparse
import json
import logging
import os
import shlex
import subprocess
import sys
import tempfile
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

import platformdirs
import requests
import yaml

from .client import APPLICATION_NAME, Client
from .errors import InstanceDoesntExist, WaifudError
from .libvirt import NewInstance
from .models import Distro, Instance

log = logging.getLogger(__name__)

DEFAULT_HOST = "http://[::]:23818"
DEFAULT_USERDATA = "#cloud-config\n"
DEFAULT_ZVOL_PREFIX = "rpool/local/vms"
DEFAULT_DISTRO_FORMAT = "waifud://qcow2"

_FAILURE_BANNER = (
    "OOPSIE WOOPSIE!! Uwu We made a mistake!! A wittle oopsie! The code monkeys at our "
    "headquarters are working VEWY HAWD to fix this!"
)


@dataclass
class CliConfig:
    """Settings stored in the waifuctl configuration file."""

    host: str
    userdata: str

    @classmethod
    def load(cls, path: str | os.PathLike) -> "CliConfig":
        """Read the configuration from ``path``."""
        data = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
        if not isinstance(data, Mapping):
            raise ValueError(f"{path}: configuration must be a record")
        values = {}
        for key in ("host", "userdata"):
            if key not in data:
                raise ValueError(f"{path}: missing field `{key}`")
            if not isinstance(data[key], str):
                raise ValueError(f"{path}: field `{key}` must be a string")
            values[key] = data[key]
        return cls(**values)

    def save(self, path: str | os.PathLike) -> None:
        """Write the configuration to ``path``."""
        Path(path).write_text(
            yaml.safe_dump({"host": self.host, "userdata": self.userdata}, sort_keys=False),
            encoding="utf-8",
        )


def config_path() -> Path:
    """Return where the waifuctl configuration file lives."""
    return Path(platformdirs.user_config_dir()) / "xeserv" / "waifuctl.yaml"


def render_table(rows: Iterable[Sequence[Any]], aligns: Sequence[str]) -> str:
    """Lay ``rows`` out in columns two spaces apart.

    ``aligns`` holds one of "<" (left) or ">" (right) for each column.
    """
    cells = [[str(cell) for cell in row] for row in rows]
    for row in cells:
        if len(row) != len(aligns):
            raise ValueError(f"row has {len(row)} cells, expected {len(aligns)}")
    widths = [max((len(row[col]) for row in cells), default=0) for col in range(len(aligns))]
    lines = []
    for row in cells:
        padded = [
            cell.rjust(width) if align == ">" else cell.ljust(width)
            for cell, width, align in zip(row, widths, aligns)
        ]
        lines.append("  ".join(padded).rstrip())
    return "\n".join(lines)


def new_instance_from_args(args: argparse.Namespace, cfg: CliConfig) -> NewInstance:
    """Build an instance request from parsed ``create`` options."""
    user_data = (
        Path(args.user_data).read_text(encoding="utf-8")
        if args.user_data is not None
        else cfg.userdata
    )
    return NewInstance(
        host=args.host,
        distro=args.distro,
        join_tailnet=args.join_tailnet,
        name=args.name,
        memory_mb=args.memory,
        cpus=args.cpus,
        disk_size_gb=args.disk_size,
        zvol_prefix=args.zvol_prefix,
        sata=False,
        user_data=user_data,
    )


def wait_until_status(
    cli: Client, instance: Instance, want: str, interval: float = 1.0
) -> Instance:
    """Poll the server until the instance reaches status ``want``."""
    while True:
        instance = cli.get_instance(instance.uuid)
        print(f"{instance.name}: {instance.status}" + " " * 40, end="\r", flush=True)
        if instance.status == want:
            break
        time.sleep(interval)
    print(flush=True)
    return instance


@dataclass
class _Context:
    cli: Client
    cfg: CliConfig
    path: Path


def _audit(ctx: _Context, args: argparse.Namespace) -> None:
    logs = ctx.cli.audit_logs()
    if args.json:
        sys.stdout.write(json.dumps([event.to_dict() for event in logs]))
        sys.stdout.flush()
        return
    rows: list[Sequence[Any]] = [("timestamp", "kind", "name", "op")]
    for event in logs:
        ts = datetime.fromtimestamp(event.ts, timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        rows.append((ts, event.kind, event.name or "", event.op))
    print(render_table(rows, ">" + "<<<"))


def _list_instances(ctx: _Context, args: argparse.Namespace) -> None:
    rows: list[Sequence[Any]] = [("name", "host", "distro", "memory", "ip", "status", "id")]
    for instance in ctx.cli.list_instances():
        try:
            addr = ctx.cli.get_instance_machine(instance.uuid).addr or ""
        except (requests.RequestException, ValueError):
            addr = ""
        rows.append(
            (
                instance.name,
                instance.host,
                instance.distro,
                instance.memory,
                addr,
                instance.status,
                instance.uuid,
            )
        )
    print(render_table(rows, ">" + "<" * 6))


def _create_instance(ctx: _Context, args: argparse.Namespace) -> None:
    request = new_instance_from_args(args, ctx.cfg)
    instance = ctx.cli.create_instance(request)
    print(f"created instance {instance.name} on {instance.host}")
    instance = wait_until_status(ctx.cli, instance, "running")
    machine = ctx.cli.get_instance_machine(instance.uuid)
    print(f"\r{instance.name}: {instance.status}: IP address: {machine.addr or ''}")


def _delete_instance(ctx: _Context, args: argparse.Namespace) -> None:
    try:
        instance = ctx.cli.get_instance_by_name(args.name)
    except (requests.RequestException, ValueError) as why:
        print(f"no instance named {args.name} was found: {why}", file=sys.stderr)
        raise InstanceDoesntExist(args.name) from why
    ctx.cli.delete_instance(instance.uuid)


def _reinit_instance(ctx: _Context, args: argparse.Namespace) -> None:
    instance = ctx.cli.get_instance_by_name(args.name)
    ctx.cli.reinit_instance(instance.uuid)


def _start_instance(ctx: _Context, args: argparse.Namespace) -> None:
    instance = ctx.cli.get_instance_by_name(args.name)
    ctx.cli.start_instance(instance.uuid)
    wait_until_status(ctx.cli, instance, "running")
    print(f"{instance.name} is running")


def _shutdown_instance(ctx: _Context, args: argparse.Namespace) -> None:
    instance = ctx.cli.get_instance_by_name(args.name)
    ctx.cli.shutdown_instance(instance.uuid)
    print(f"shut down {instance.name}")


def _reboot_instance(ctx: _Context, args: argparse.Namespace) -> None:
    instance = ctx.cli.get_instance_by_name(args.name)
    if args.hard:
        ctx.cli.hard_reboot_instance(instance.uuid)
    else:
        ctx.cli.reboot_instance(instance.uuid)
    wait_until_status(ctx.cli, instance, "running")


def _distro_from_args(args: argparse.Namespace) -> Distro:
    return Distro(
        name=args.name,
        download_url=args.download_url,
        sha256sum=args.sha256sum,
        min_size=args.min_size,
        format=args.format,
    )


def _create_distro(ctx: _Context, args: argparse.Namespace) -> None:
    distro = ctx.cli.create_distro(_distro_from_args(args))
    print(f"created {distro.name}")


def _update_distro(ctx: _Context, args: argparse.Namespace) -> int:
    try:
        ctx.cli.get_distro(args.name)
    except (requests.RequestException, ValueError) as why:
        print(f"can't get distro {args.name}: {why}")
        return 1
    distro = ctx.cli.update_distro(_distro_from_args(args))
    print(f"created {distro.name}")
    return 0


def _delete_distro(ctx: _Context, args: argparse.Namespace) -> None:
    ctx.cli.delete_distro(args.name)


def _list_distros(ctx: _Context, args: argparse.Namespace) -> None:
    distros = ctx.cli.list_distros()
    if args.verbose:
        rows: list[Sequence[Any]] = [("name", "min size", "sha256", "url")]
        rows += [(d.name, d.min_size, d.sha256sum, d.download_url) for d in distros]
        print(render_table(rows, ">" + "<<<"))
    else:
        rows = [("name", "disk GB")]
        rows += [(d.name, d.min_size) for d in distros]
        print(render_table(rows, "<<"))


def _scrape_distros(ctx: _Context, args: argparse.Namespace) -> None:
    from .scrape.updater import get_all

    for distro in get_all():
        ctx.cli.update_distro(distro)
        print(f"updated {distro.name}")


def _config_show(ctx: _Context, args: argparse.Namespace) -> None:
    print(f"waifud host: {ctx.cfg.host}")
    print(f"default cloudconfig:\n\n{ctx.cfg.userdata}")


def _config_set_host(ctx: _Context, args: argparse.Namespace) -> None:
    CliConfig(host=args.url, userdata=ctx.cfg.userdata).save(ctx.path)
    print(f"set host to {args.url} in {ctx.path}")


def _edit(text: str) -> str:
    editor = os.environ.get("VISUAL") or os.environ.get("EDITOR") or "vi"
    with tempfile.NamedTemporaryFile(
        "w", suffix=".yaml", delete=False, encoding="utf-8"
    ) as handle:
        handle.write(text)
        name = handle.name
    try:
        subprocess.run([*shlex.split(editor), name], check=True)
        return Path(name).read_text(encoding="utf-8")
    finally:
        os.unlink(name)


def _config_set_userdata(ctx: _Context, args: argparse.Namespace) -> None:
    userdata = _edit(ctx.cfg.userdata)
    CliConfig(host=ctx.cfg.host, userdata=userdata).save(ctx.path)
    print(f"wrote default cloudconfig to {ctx.path}")


def _subparser(subparsers: Any, name: str, description: str) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(
        name, help=description, description=description, add_help=False
    )
    parser.add_argument("--help", action="help", help="show this help message and exit")
    return parser


def _add_distro_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-n", "--name", required=True,
        help="distribution name, include the version as a suffix",
    )
    parser.add_argument(
        "-d", "--download-url", dest="download_url", required=True,
        help="download URL for the qcow2 base snapshot",
    )
    parser.add_argument(
        "-s", "--sha256", dest="sha256sum", required=True,
        help="the sha256 of the qcow2 base snapshot",
    )
    parser.add_argument(
        "-m", "--min-size", dest="min_size", type=int, required=True,
        help="the minimum size of a VM created from this snapshot (gigabytes)",
    )
    parser.add_argument(
        "-f", "--format", default=DEFAULT_DISTRO_FORMAT, help="the format of the disk image"
    )


def build_parser() -> argparse.ArgumentParser:
    """Return the argument parser for waifuctl."""
    parser = argparse.ArgumentParser(
        prog="waifuctl",
        description="waifuctl lets you manage VM instances on waifud.",
        add_help=False,
    )
    parser.add_argument("--help", action="help", help="show this help message and exit")
    parser.add_argument("-V", "--version", action="version", version=APPLICATION_NAME)
    parser.add_argument(
        "-h", "--host", dest="server",
        help="waifud host to connect to, formatted as a http/https URL",
    )
    commands = parser.add_subparsers(dest="cmd", metavar="COMMAND", required=True)

    audit = _subparser(commands, "audit", "Manage audit logs")
    audit.add_argument("--json", action="store_true", help="format all audit logs in JSON")
    audit.set_defaults(func=_audit)

    config = _subparser(commands, "config", "Manage waifuctl configuration")
    config_cmds = config.add_subparsers(dest="config_cmd", metavar="COMMAND", required=True)
    _subparser(config_cmds, "show", "Shows current config").set_defaults(func=_config_show)
    set_host = _subparser(config_cmds, "set-host", "Set the waifud host to an arbitrary URL")
    set_host.add_argument("url", help="the waifud host")
    set_host.set_defaults(func=_config_set_host)
    _subparser(
        config_cmds, "set-userdata", "Set the default cloudconfig added to instances"
    ).set_defaults(func=_config_set_userdata)

    _subparser(commands, "list", "List all instances").set_defaults(func=_list_instances)

    create = _subparser(commands, "create", "Create a new instance")
    create.add_argument("-n", "--name", help="instance name, leave blank to autogenerate")
    create.add_argument("-m", "--memory", type=int, default=512, help="memory in megabytes")
    create.add_argument("-c", "--cpus", type=int, default=2, help="CPU cores")
    create.add_argument("-h", "--host", required=True, help="host to put the VM on")
    create.add_argument(
        "-s", "--disk-size", dest="disk_size", type=int,
        help="disk size in GB, leave blank to use distribution default",
    )
    create.add_argument(
        "-z", "--zvol", dest="zvol_prefix", default=DEFAULT_ZVOL_PREFIX,
        help="ZFS dataset to put the VM disk in",
    )
    create.add_argument(
        "-u", "--user-data", dest="user_data", type=Path,
        help="file containing cloud-init user data, if not set will default to configured value",
    )
    create.add_argument("-d", "--distro", required=True, help="distribution to use")
    create.add_argument(
        "-j", "--join-tailnet", dest="join_tailnet", action="store_true",
        help="automagically join the tailnet",
    )
    create.set_defaults(func=_create_instance)

    for name, description, handler in (
        ("delete", "Delete an instance by name", _delete_instance),
        ("reinit", "Reset a VM back to factory settings", _reinit_instance),
        ("start", "Turn an instance on", _start_instance),
        ("shutdown", "Turn an instance off", _shutdown_instance),
    ):
        sub = _subparser(commands, name, description)
        sub.add_argument("name", help="instance name")
        sub.set_defaults(func=handler)

    distro = _subparser(commands, "distro", "Manage distribution images in waifud")
    distro_cmds = distro.add_subparsers(dest="distro_cmd", metavar="COMMAND", required=True)
    distro_create = _subparser(distro_cmds, "create", "Create a new base distro snapshot")
    _add_distro_options(distro_create)
    distro_create.set_defaults(func=_create_distro)
    distro_delete = _subparser(distro_cmds, "delete", "Delete a distro image")
    distro_delete.add_argument("name")
    distro_delete.set_defaults(func=_delete_distro)
    distro_list = _subparser(distro_cmds, "list", "List all distros")
    distro_list.add_argument("-v", dest="verbose", action="store_true",
                             help="show more information")
    distro_list.set_defaults(func=_list_distros)
    _subparser(
        distro_cmds, "scrape", "Scrapes current versions for distributions"
    ).set_defaults(func=_scrape_distros)
    distro_update = _subparser(distro_cmds, "update", "Updates a base distro snapshot")
    _add_distro_options(distro_update)
    distro_update.set_defaults(func=_update_distro)

    reboot = _subparser(commands, "reboot", "Manually trigger instance reboot")
    reboot.add_argument("name", help="instance name")
    reboot.add_argument("-h", "--hard", action="store_true", help="unsafely force reboot")
    reboot.set_defaults(func=_reboot_instance)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run waifuctl and return its exit status."""
    logging.basicConfig()
    args = build_parser().parse_args(argv)

    path = config_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        if args.server is None and not path.exists():
            CliConfig(host=DEFAULT_HOST, userdata=DEFAULT_USERDATA).save(path)
        cfg = CliConfig.load(path)
    except (OSError, ValueError, yaml.YAMLError) as why:
        print(f"can't load config: {why}", file=sys.stderr)
        return 1
    log.debug("config: %r", cfg)

    if not cfg.host:
        print(
            "welcome to waifud, you may want to run `waifuctl config set-host` "
            "to point waifuctl to your waifud server"
        )

    host = args.server if args.server is not None else cfg.host
    try:
        cli = Client(host)
    except ValueError as why:
        print(why, file=sys.stderr)
        return 1

    with cli:
        try:
            code = args.func(_Context(cli=cli, cfg=cfg, path=path), args)
        except (
            WaifudError,
            requests.RequestException,
            OSError,
            ValueError,
            subprocess.CalledProcessError,
        ) as why:
            print(_FAILURE_BANNER, file=sys.stderr)
            print(why, file=sys.stderr)
            return 0
    return code or 0


if __name__ == "__main__":
    sys.exit(main())