"""Virtual machine management: records, cloud-init data, admin pages, image scrapers and a CLI client."""

__version__ = "0.1.0"