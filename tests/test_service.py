from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from lighthousectl.core.accessories import AccessoryStore
from lighthousectl.core.model import DetectedDevice, Settings
from lighthousectl.core.service import LighthouseService


class FakeScanner:
    def __init__(self) -> None:
        self.windows: list[float] = []

    async def discover(self, timeout_s: float):
        self.windows.append(timeout_s)
        yield DetectedDevice(address="AA:BB:CC:DD:EE:01", name="LHB-AAAA0001")
        yield DetectedDevice(address="AA:BB:CC:DD:EE:02", name="Keyboard")


class FakeTransport:
    async def read_power(self, device, token) -> bool:
        return True

    async def write_power(self, device, on, token) -> None:
        pass

    async def identify(self, device, token) -> None:
        pass


def test_scan_returns_raw_devices_without_registering() -> None:
    scanner = FakeScanner()
    service = LighthouseService(
        settings=Settings(scan_timeout_s=2.0),
        transport=FakeTransport(),
        scanner=scanner,
        bridge=AccessoryStore(),
    )

    devices = asyncio.run(service.scan())
    assert [device.name for device in devices] == ["LHB-AAAA0001", "Keyboard"]
    assert scanner.windows == [2.0]
    assert service.lighthouses() == []


def test_start_persists_accessories_under_xdg_data(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    service = LighthouseService(transport=FakeTransport(), scanner=FakeScanner())

    async def scenario() -> bool:
        await service.start()
        on = await service.get_power("LHB-AAAA0001")
        await service.stop()
        return on

    assert asyncio.run(scenario()) is True
    assert service.settings == Settings()
    assert service.last_scan is not None
    assert service.last_scan.added == ("LHB-AAAA0001",)
    assert [device.name for device in service.lighthouses()] == ["LHB-AAAA0001"]
    assert (tmp_path / "data" / "lighthousectl" / "accessories.yaml").exists()
    assert [a.name for a in AccessoryStore(tmp_path / "data" / "lighthousectl" / "accessories.yaml").cached_accessories()] == [
        "LHB-AAAA0001"
    ]
