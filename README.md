# waifud

Tools for keeping track of virtual machines on a small fleet of hosts:

- SQLite-backed records of instances, distribution images, audit log entries
  and sessions;
- the logic behind the distro, audit log and cloud-init endpoints of a waifud
  server;
- HTML pages for an administration panel;
- scrapers that find the latest Ubuntu, Arch Linux, Rocky Linux and Amazon
  Linux cloud images;
- `waifuctl`, a command-line client for a waifud server.

## Installing

```
pip install .
```

Install the test dependencies with `pip install .[test]`.

## Using waifuctl

`waifuctl` talks to a waifud server over HTTP. Its configuration lives in
`xeserv/waifuctl.yaml` under your user configuration directory and holds two
fields: `host`, the server URL, and `userdata`, the default cloud-init user
data. If the file does not exist and no `--host` is given, it is created with
host `http://[::]:23818` and a minimal `#cloud-config` document.

```
waifuctl config show
waifuctl config set-host http://vmhost.example.com:23818
waifuctl config set-userdata
```

`config set-userdata` opens the current user data in `$VISUAL`, `$EDITOR` or
`vi` and saves what you write.

Manage instances:

```
waifuctl list
waifuctl create --host vmhost --distro ubuntu-22.04 --memory 1024 --cpus 2
waifuctl start NAME
waifuctl shutdown NAME
waifuctl reboot NAME
waifuctl reboot --hard NAME
waifuctl reinit NAME
waifuctl delete NAME
```

`create` also takes `--name`, `--disk-size`, `--zvol` (default
`rpool/local/vms`), `--user-data FILE` (defaults to the configured user data)
and `--join-tailnet`. `create`, `start` and `reboot` poll the server until the
instance reports the status `running`.

Manage distribution images:

```
waifuctl distro list
waifuctl distro list -v
waifuctl distro create --name arch --download-url URL --sha256 SUM --min-size 2
waifuctl distro update --name arch --download-url URL --sha256 SUM --min-size 2
waifuctl distro delete arch
waifuctl distro scrape
```

`distro create` and `distro update` take `--format` (default
`waifud://qcow2`). `distro scrape` finds the current upstream images and sends
each to the server as an update.

Read the audit log:

```
waifuctl audit
waifuctl audit --json
```

Give `--host URL` before the subcommand to talk to a different server than the
configured one. Because `-h` means `--host`, help is shown with `--help`.

## Using the library

- `waifud.client.Client(base_url)` is the HTTP client for the server API, with
  one method per endpoint (`list_instances`, `create_instance`,
  `get_instance_by_name`, `reboot_instance`, `list_distros`, `update_distro`,
  `audit_logs` and so on). HTTP errors are raised as
  `requests.HTTPError`.
- `waifud.models` holds `Instance`, `Distro`, `AuditEvent`, `Session` and
  `CloudconfigSeed`. `establish_connection()` opens the database named by its
  argument, by `DATABASE_URL`, or `./var/waifud.db`; `record_audit()` appends
  an audit log entry. Lookups that find nothing raise `waifud.errors.NotFound`.
- `waifud.api.distros`, `waifud.api.audit` and `waifud.api.cloudinit` hold the
  operations behind the server endpoints. `cloudinit.user_data()` marks an
  instance as running and returns its stored user data, `meta_data()` returns
  its meta-data document, and `tailnet_vendor_data()` builds a cloud-config
  that installs Tailscale and joins the tailnet.
- `waifud.api.machines.Machine` describes a libvirt domain;
  `libvirt_uri(host)` gives the connection URI for a host.
- `waifud.admin` renders the administration pages as HTML strings.
- `waifud.config.load_config(path)` reads the server configuration from a YAML
  or JSON file.
- `waifud.libvirt.NewInstance` is an instance creation request, and
  `random_mac()` returns a random locally administered MAC address.
- `waifud.errors` defines the application errors; `status_for(error)` maps any
  exception onto an HTTP status and response body.
- `waifud.scrape.updater.get_all()` gathers the latest upstream images, and
  `update_distros(conn, distros)` writes them to the distros already in the
  database in one transaction.

## What this package does not do

- It has no HTTP server: the endpoint logic and admin pages are functions to
  call, with no routing, serving or authentication in front of them.
- It does not control virtual machines. Nothing here defines, starts, stops or
  reboots libvirt domains, or creates, hydrates or rolls back zfs volumes; the
  server that `waifuctl` talks to does that work.
- It does not create the database schema. The `instances`, `distros`,
  `audit_logs`, `cloudconfig_seeds` and `sessions` tables must already exist.
- Vendor data is only built for instances that join the tailnet.