"""Accessory layer: displayed state and persisted accessory identity."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol

import yaml

from lighthousectl.core.errors import ConfigLoadError, ConfigValidationError
from lighthousectl.core.model import Accessory, accessory_uuid

LOGGER = logging.getLogger(__name__)


class StateSink(Protocol):
    def update_power(self, name: str, on: bool) -> None:
        """Show `on` as the current power state of accessory `name`."""


class AccessoryBridge(StateSink, Protocol):
    def cached_accessories(self) -> list[Accessory]:
        """Accessories restored from a previous run."""

    def register(self, accessory: Accessory) -> None:
        """Publish a new accessory."""

    def unregister(self, accessories: Iterable[Accessory]) -> None:
        """Withdraw accessories that no longer exist."""


def default_store_path() -> Path:
    xdg_data = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local/share"))
    return xdg_data / "lighthousectl/accessories.yaml"


class AccessoryStore:
    """In-memory accessory bridge that remembers accessory identities on disk.

    Only identity (name and uuid) is persisted. Displayed power state lives for
    the lifetime of the process.
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path = path
        self._accessories: dict[str, Accessory] = {}
        self._cached: list[Accessory] = self._load(path) if path is not None else []

    @property
    def accessories(self) -> dict[str, Accessory]:
        return dict(self._accessories)

    def cached_accessories(self) -> list[Accessory]:
        return list(self._cached)

    def register(self, accessory: Accessory) -> None:
        self._accessories[accessory.name] = accessory
        self._save()

    def unregister(self, accessories: Iterable[Accessory]) -> None:
        removed = False
        for accessory in accessories:
            self._cached = [cached for cached in self._cached if cached.uuid != accessory.uuid]
            if self._accessories.pop(accessory.name, None) is not None:
                removed = True
            LOGGER.info("Removed accessory %s", accessory.name)
        if removed:
            self._save()

    def update_power(self, name: str, on: bool) -> None:
        accessory = self._accessories.get(name)
        if accessory is None:
            LOGGER.debug("Ignoring state for unknown accessory %s", name)
            return
        accessory.on = on

    @staticmethod
    def _load(path: Path) -> list[Accessory]:
        if not path.exists():
            return []
        try:
            loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise ConfigLoadError(f"Could not read accessory cache {path}: {exc}") from exc
        except yaml.YAMLError as exc:
            raise ConfigValidationError(f"Invalid YAML in {path}: {exc}") from exc

        cached: list[Accessory] = []
        for entry in loaded or []:
            if not isinstance(entry, dict) or not entry.get("name"):
                LOGGER.warning("Skipping malformed accessory cache entry: %r", entry)
                continue
            accessory = Accessory.for_name(str(entry["name"]))
            accessory.uuid = str(entry.get("uuid") or accessory_uuid(accessory.name))
            cached.append(accessory)
        return cached

    def _save(self) -> None:
        if self.path is None:
            return
        entries = [
            {"name": accessory.name, "uuid": accessory.uuid}
            for accessory in sorted(self._accessories.values(), key=lambda a: a.name)
        ]
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(yaml.safe_dump(entries, sort_keys=False), encoding="utf-8")
        except OSError as exc:
            LOGGER.warning("Could not write accessory cache %s: %s", self.path, exc)
