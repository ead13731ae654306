"""Service layer used by the CLI and the public API."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from lighthousectl.core.accessories import AccessoryBridge, AccessoryStore, default_store_path
from lighthousectl.core.config import load_config
from lighthousectl.core.discovery import DiscoveryReconciler
from lighthousectl.core.engine import LighthouseEngine
from lighthousectl.core.model import DetectedDevice, Lighthouse, ReconcileResult, Settings
from lighthousectl.transports.base import Scanner, Transport
from lighthousectl.transports.ble_gatt import BLEGATTTransport
from lighthousectl.transports.ble_scan import BLEScanner

LOGGER = logging.getLogger(__name__)


class LighthouseService:
    def __init__(
        self,
        *,
        config_path: Path | None = None,
        settings: Settings | None = None,
        transport: Transport | None = None,
        scanner: Scanner | None = None,
        bridge: AccessoryBridge | None = None,
    ) -> None:
        if settings is None:
            loaded = load_config(config_path)
            settings = loaded.settings
            self.load_warnings = loaded.warnings
        else:
            self.load_warnings = ()
        self.settings = settings
        self.bridge = bridge if bridge is not None else AccessoryStore(default_store_path())
        self.scanner = scanner or BLEScanner()
        self.engine = LighthouseEngine(settings, transport or BLEGATTTransport(), self.bridge)
        self.reconciler = DiscoveryReconciler(settings, self.scanner, self.engine, self.bridge)
        self.last_scan: ReconcileResult | None = None

    async def scan(self) -> list[DetectedDevice]:
        """Run one discovery window without touching the registry."""
        return [device async for device in self.scanner.discover(self.settings.scan_timeout_s)]

    async def start(self) -> ReconcileResult:
        self.last_scan = await self.reconciler.run()
        LOGGER.info(
            "%s: %d lighthouse(s) registered, %d disabled, %d removed",
            self.settings.name,
            len(self.last_scan.added) + len(self.last_scan.rehydrated),
            len(self.last_scan.disabled),
            len(self.last_scan.removed),
        )
        return self.last_scan

    async def stop(self) -> None:
        await self.engine.stop()

    async def serve_forever(self) -> None:
        await self.start()
        try:
            await asyncio.Event().wait()
        finally:
            await self.stop()

    def lighthouses(self) -> list[Lighthouse]:
        return sorted(self.engine.registry, key=lambda device: device.name)

    async def set_power(self, name: str, on: bool) -> None:
        await self.engine.set_power(name, on)

    async def identify(self, name: str) -> None:
        await self.engine.identify(name)

    async def get_power(self, name: str) -> bool:
        return await self.engine.get_power(name)
