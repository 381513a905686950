[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "waifud"
version = "0.1.0"
description = "Records, cloud-init data, admin pages, image scrapers and a command-line client for managing virtual machines"
requires-python = ">=3.10"
keywords = ["virtual-machines", "cloud-init", "zfs", "libvirt", "homelab", "sqlite"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
]
dependencies = [
    "requests",
    "beautifulsoup4",
    "pyyaml",
    "platformdirs",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[project.scripts]
waifuctl = "waifud.waifuctl:main"

[tool.hatch.build.targets.wheel]
packages = ["waifud"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
