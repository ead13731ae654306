"""Config loading and validation for lighthousectl."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from lighthousectl.core.errors import ConfigLoadError, ConfigValidationError
from lighthousectl.core.model import Settings

LOGGER = logging.getLogger(__name__)


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


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


@dataclass(frozen=True)
class LoadedConfig:
    settings: Settings
    source: Path | None
    warnings: tuple[str, ...]


def _load_schema_validator() -> Any:
    schema_text = resources.files("lighthousectl.schemas").joinpath("config.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def default_config_path() -> Path:
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return xdg_config / "lighthousectl/config.yaml"


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigLoadError(f"Could not read config file {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise ConfigValidationError(f"Invalid YAML in {path}: {exc}") from exc

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigValidationError(f"Config file {path} must contain a mapping at root")
    return loaded


def build_settings(doc: dict[str, Any], source: Path | str = "<config>") -> tuple[Settings, tuple[str, ...]]:
    validator = _load_schema_validator()
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise ConfigValidationError(f"Schema validation failed for {source}{where}: {exc.message}") from exc

    defaults = Settings()
    prefix = doc.get("namePrefix", defaults.name_prefix)
    lighthouses = tuple(doc["lighthouses"]) if doc.get("lighthouses") else None

    warnings: list[str] = []
    for name in lighthouses or ():
        if not name.startswith(prefix):
            warning = f"Lighthouse '{name}' does not start with '{prefix}'; it will only match by exact name"
            LOGGER.warning(warning)
            warnings.append(warning)

    settings = Settings(
        name=doc.get("name", defaults.name),
        lighthouses=lighthouses,
        retries=int(doc.get("retries", defaults.retries)),
        scan_timeout_s=float(doc.get("scanTimeout", defaults.scan_timeout_s)),
        ble_timeout_s=float(doc.get("bleTimeout", defaults.ble_timeout_s)),
        update_frequency_s=float(doc.get("updateFrequency", defaults.update_frequency_s)),
        name_prefix=prefix,
    )
    return settings, tuple(warnings)


def load_config(path: Path | None = None) -> LoadedConfig:
    """Load settings from `path`, or from the default location if it exists.

    An explicit path must exist. A missing default file yields default settings.
    """
    if path is None:
        path = default_config_path()
        if not path.exists():
            LOGGER.debug("No config file at %s, using defaults", path)
            return LoadedConfig(settings=Settings(), source=None, warnings=())

    doc = _read_yaml(path)
    settings, warnings = build_settings(doc, path)
    return LoadedConfig(settings=settings, source=path, warnings=warnings)
