"""Registry of known lighthouses, keyed by advertised name."""

from __future__ import annotations

from collections.abc import Iterator

from lighthousectl.core.errors import DeviceSelectionError
from lighthousectl.core.model import Lighthouse


class DeviceRegistry:
    def __init__(self) -> None:
        self._devices: dict[str, Lighthouse] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._devices

    def __iter__(self) -> Iterator[Lighthouse]:
        return iter(list(self._devices.values()))

    def __len__(self) -> int:
        return len(self._devices)

    def names(self) -> list[str]:
        return sorted(self._devices)

    def add(self, device: Lighthouse) -> Lighthouse:
        """Insert `device`, replacing any entry with the same name."""
        self._devices[device.name] = device
        return device

    def get(self, name: str) -> Lighthouse:
        device = self._devices.get(name)
        if device is None:
            known = ", ".join(self.names()) or "<none>"
            raise DeviceSelectionError(f"Unknown lighthouse '{name}'. Known: {known}")
        return device

    def find(self, name: str) -> Lighthouse | None:
        return self._devices.get(name)

    def pop(self, name: str) -> Lighthouse | None:
        return self._devices.pop(name, None)

    def owns(self, device: Lighthouse) -> bool:
        return self._devices.get(device.name) is device
