"""Port table loading and validation for YAML-based canlinkctl configuration."""

from __future__ import annotations

import json
import logging
import os
import re
from collections.abc import Iterable
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from canlinkctl.core.errors import ConfigLoadError, ConfigValidationError, InputValidationError
from canlinkctl.core.model import PortTable, PortTarget

DEFAULT_CAN_NAME = "can0"
DEFAULT_BITRATE = 1_000_000
DEFAULT_TIMEOUT_S = 120.0
DEFAULT_DRIVER = "gs_usb"
_NAME_RE = re.compile(r"[^\s:/]{1,15}")
_BITRATE_RE = re.compile(r"[0-9]+")
LOGGER = logging.getLogger(__name__)


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


UniqueKeyLoader.yaml_implicit_resolvers = {
    key: list(value) for key, value in yaml.SafeLoader.yaml_implicit_resolvers.items()
}

for first_char, mappings in list(UniqueKeyLoader.yaml_implicit_resolvers.items()):
    UniqueKeyLoader.yaml_implicit_resolvers[first_char] = [
        (tag, regexp)
        for tag, regexp in mappings
        if tag != "tag:yaml.org,2002:bool"
    ]


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise ConfigValidationError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


def _load_schema_validator() -> Any:
    schema_text = resources.files("canlinkctl.schemas").joinpath("ports.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def default_config_path() -> Path:
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return xdg_config / "canlinkctl/ports.yaml"


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigLoadError(f"Could not read port table {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise ConfigValidationError(f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise ConfigValidationError(f"Port table {path} must contain a mapping at root")
    return loaded


def is_valid_interface_name(name: str) -> bool:
    """Kernel interface names: at most 15 characters, no whitespace, colon or slash."""
    return bool(_NAME_RE.fullmatch(name))


def _parse_target(value: str, *, context: str) -> PortTarget:
    name, sep, bitrate = value.strip().rpartition(":")
    if not sep or not name or not _BITRATE_RE.fullmatch(bitrate):
        raise ConfigValidationError(f"{context} must look like NAME:BITRATE, got '{value}'")
    return PortTarget(name=name, bitrate=int(bitrate))


def build_port_table(
    ports: dict[str, PortTarget],
    expected_count: int | None = None,
    *,
    source: str = "<arguments>",
) -> PortTable:
    """Check cross-entry constraints and freeze ``ports`` into a :class:`PortTable`."""
    if not ports:
        raise ConfigValidationError(f"Port table from {source} defines no ports")

    seen: dict[str, str] = {}
    for bus_address, target in ports.items():
        if not is_valid_interface_name(target.name):
            raise ConfigValidationError(
                f"Port {bus_address} in {source} has invalid interface name '{target.name}'"
            )
        if target.bitrate <= 0:
            raise ConfigValidationError(
                f"Port {bus_address} in {source} has invalid bitrate {target.bitrate}"
            )
        if target.name in seen:
            raise ConfigValidationError(
                f"Ports {seen[target.name]} and {bus_address} in {source} "
                f"both target interface name '{target.name}'"
            )
        seen[target.name] = bus_address

    if expected_count is None:
        expected_count = len(ports)
    elif expected_count < 1:
        raise ConfigValidationError(f"expected_count in {source} must be at least 1")

    return PortTable(expected_count=expected_count, ports=dict(ports))


def _build_table(doc: dict[str, Any], source: Path) -> PortTable:
    validator = _load_schema_validator()
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise ConfigValidationError(f"Schema validation failed for {source}{where}: {exc.message}") from exc

    ports: dict[str, PortTarget] = {}
    for bus_address, spec in doc["ports"].items():
        if isinstance(spec, str):
            ports[bus_address] = _parse_target(spec, context=f"ports.{bus_address}")
        else:
            ports[bus_address] = PortTarget(name=spec["name"], bitrate=int(spec["bitrate"]))

    return build_port_table(ports, doc.get("expected_count"), source=str(source))


def load_port_table(path: Path | str | None = None) -> PortTable:
    """Load the port table from ``path`` or from the default config location."""
    source = Path(path) if path is not None else default_config_path()
    if not source.exists():
        raise ConfigLoadError(
            f"Port table {source} does not exist. Create it or pass --config/--port."
        )
    table = _build_table(_read_yaml(source), source)
    LOGGER.info("Loaded %d port(s) from %s", len(table.ports), source)
    return table


def parse_port_spec(spec: str) -> tuple[str, PortTarget]:
    """Parse a ``BUS=NAME:BITRATE`` command-line port entry."""
    bus_address, sep, target = spec.partition("=")
    bus_address = bus_address.strip()
    if not sep or not bus_address:
        raise InputValidationError(f"Port '{spec}' must look like BUS=NAME:BITRATE")
    try:
        return bus_address, _parse_target(target, context=f"Port '{spec}'")
    except ConfigValidationError as exc:
        raise InputValidationError(str(exc)) from exc


def port_table_from_specs(specs: Iterable[str], expected_count: int | None = None) -> PortTable:
    ports: dict[str, PortTarget] = {}
    for spec in specs:
        bus_address, target = parse_port_spec(spec)
        if bus_address in ports:
            raise InputValidationError(f"Port {bus_address} given more than once")
        ports[bus_address] = target
    return build_port_table(ports, expected_count)
