"""BLE advertisement scanning."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from typing import Any

from bleak import BleakScanner
from bleak.exc import BleakError

from lighthousectl.core.errors import AdapterUnavailableError
from lighthousectl.core.model import DetectedDevice

LOGGER = logging.getLogger(__name__)


class BLEScanner:
    def __init__(self, *, scanner_factory: Callable[[], Any] = BleakScanner) -> None:
        self._scanner_factory = scanner_factory

    async def discover(self, timeout_s: float) -> AsyncIterator[DetectedDevice]:
        try:
            scanner = self._scanner_factory()
            await scanner.start()
        except (BleakError, OSError) as exc:
            raise AdapterUnavailableError(f"Bluetooth adapter unavailable: {exc}") from exc

        LOGGER.info("Scanning for lighthouses...")
        try:
            await asyncio.sleep(timeout_s)
        finally:
            try:
                await scanner.stop()
            except (BleakError, OSError) as exc:
                LOGGER.warning("Stopping scan failed: %s", exc)
            LOGGER.info("Scanning complete")

        for device, advertisement in scanner.discovered_devices_and_advertisement_data.values():
            name = advertisement.local_name or device.name
            if not name:
                continue
            yield DetectedDevice(address=device.address, name=name, handle=device)
