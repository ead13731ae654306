"""Stable public API for building tooling on top of lighthousectl.

This module is the supported integration surface for third-party callers
(bridges, dashboards, scripts). Avoid importing from private/internal modules
unless intentionally depending on non-stable internals.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from lighthousectl.core.accessories import AccessoryBridge, AccessoryStore, StateSink
from lighthousectl.core.errors import (
    AdapterUnavailableError,
    AttributeResolutionError,
    ConfigLoadError,
    ConfigValidationError,
    DeviceDisabledError,
    DeviceSelectionError,
    LighthouseError,
    OperationAbandonedError,
    TransportConnectError,
    TransportError,
    TransportReadError,
    TransportTimeoutError,
    TransportWriteError,
)
from lighthousectl.core.model import Accessory, DetectedDevice, ReconcileResult, Settings
from lighthousectl.core.service import LighthouseService
from lighthousectl.transports.base import Scanner, Transport

__all__ = [
    "LighthouseError",
    "ConfigLoadError",
    "ConfigValidationError",
    "DeviceSelectionError",
    "DeviceDisabledError",
    "TransportError",
    "AdapterUnavailableError",
    "AttributeResolutionError",
    "TransportConnectError",
    "TransportReadError",
    "TransportWriteError",
    "TransportTimeoutError",
    "OperationAbandonedError",
    "Accessory",
    "AccessoryBridge",
    "AccessoryStore",
    "DetectedDevice",
    "ReconcileResult",
    "Settings",
    "Scanner",
    "StateSink",
    "Transport",
    "LighthouseStatus",
    "Client",
]


@dataclass(frozen=True)
class LighthouseStatus:
    """Point-in-time view of one registered lighthouse."""

    name: str
    address: str | None
    available: bool
    last_success: float | None
    read_failures: int
    write_failures: int


class Client:
    """Public async client for controlling lighthouses.

    `start()` runs the discovery scan and begins background polling; the
    control methods raise a `LighthouseError` subclass on failure.
    """

    def __init__(
        self,
        *,
        config_path: Path | None = None,
        settings: Settings | None = None,
        transport: Transport | None = None,
        scanner: Scanner | None = None,
        bridge: AccessoryBridge | None = None,
    ) -> None:
        self._service = LighthouseService(
            config_path=config_path,
            settings=settings,
            transport=transport,
            scanner=scanner,
            bridge=bridge,
        )

    @property
    def settings(self) -> Settings:
        return self._service.settings

    @property
    def load_warnings(self) -> tuple[str, ...]:
        return self._service.load_warnings

    async def start(self) -> ReconcileResult:
        return await self._service.start()

    async def stop(self) -> None:
        await self._service.stop()

    def list_lighthouses(self) -> list[LighthouseStatus]:
        available = self._service.engine.adapter_available
        return [
            LighthouseStatus(
                name=device.name,
                address=device.address,
                available=available and not device.disabled,
                last_success=device.last_success,
                read_failures=device.read_failures,
                write_failures=device.write_failures,
            )
            for device in self._service.lighthouses()
        ]

    async def set_power(self, name: str, on: bool) -> None:
        await self._service.set_power(name, on)

    async def identify(self, name: str) -> None:
        await self._service.identify(name)

    async def get_power(self, name: str) -> bool:
        return await self._service.get_power(name)
