"""TOML-based builder configuration.

Loads ~/.skybake/defaults.toml (global) and skybake.toml (project),
layers them section by section, and resolves the [oci] and [logging]
tables into OCI and LogConfig.

Example skybake.toml::

    [oci]
    availability_domain = "aaaa:PHX-AD-1"
    base_image_id = "ocid1.image.oc1.phx.xxx"
    shape = "VM.Standard2.1"
    subnet_id = "ocid1.subnet.oc1.phx.xxx"
    image_wait_retries = "unbounded"

    [logging]
    level = "DEBUG"
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import TYPE_CHECKING, Any, TypeAlias

from skybake.providers.wait import UNBOUNDED, Bounded, Retries

if TYPE_CHECKING:
    from skybake.observability.logging import LogConfig
    from skybake.providers.oci.config import OCI

RawConfig: TypeAlias = dict[str, Any]

GLOBAL_CONFIG_PATH = Path.home() / ".skybake" / "defaults.toml"
PROJECT_CONFIG_NAME = "skybake.toml"

_SECTIONS = ("oci", "logging")
_RETRY_FIELDS = ("instance_wait_retries", "image_wait_retries")


def _read_toml(path: Path) -> RawConfig:
    if not path.is_file():
        return {}
    with path.open("rb") as f:
        return tomllib.load(f)


def _sections(path: Path) -> dict[str, RawConfig]:
    raw = _read_toml(path)
    unknown = sorted(set(raw) - set(_SECTIONS))
    if unknown:
        raise ValueError(f"{path}: unknown section(s) {unknown}, expected {list(_SECTIONS)}")
    for name, table in raw.items():
        if not isinstance(table, dict):
            raise ValueError(f"{path}: '{name}' must be a table")
    return raw


def load_config(
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
) -> dict[str, RawConfig]:
    """Read the global and project files into one ``{section: table}`` mapping.

    Keys in the project file replace the same keys of the global file,
    section by section. Both sections are always present.

    Raises:
        ValueError: A file holds a section other than [oci] or [logging],
            or one of those is not a table.
    """
    layers = [
        _sections(global_path or GLOBAL_CONFIG_PATH),
        _sections((project_dir or Path.cwd()) / PROJECT_CONFIG_NAME),
    ]
    return {
        name: {key: value for layer in layers for key, value in layer.get(name, {}).items()}
        for name in _SECTIONS
    }


def parse_retries(name: str, value: object) -> Retries:
    """Parse a retry budget: a positive int or the string "unbounded"."""
    match value:
        case "unbounded":
            return UNBOUNDED
        case bool():
            raise ValueError(f"'{name}' must be a positive integer or \"unbounded\"")
        case int() if value > 0:
            return Bounded(value)
        case _:
            raise ValueError(
                f"'{name}' must be a positive integer or \"unbounded\", got {value!r}"
            )


def resolve_oci(
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
) -> OCI:
    from skybake.providers.oci.config import OCI

    raw = dict(load_config(project_dir=project_dir, global_path=global_path)["oci"])
    for name in _RETRY_FIELDS:
        if name in raw:
            raw[name] = parse_retries(name, raw[name])
    return OCI(**raw)


def resolve_logging(
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
) -> LogConfig:
    from skybake.observability.logging import LogConfig

    raw = load_config(project_dir=project_dir, global_path=global_path)["logging"]
    return LogConfig(**raw)
