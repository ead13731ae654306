"""Transport interfaces."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Protocol

from lighthousectl.core.model import DetectedDevice, Lighthouse
from lighthousectl.core.racer import CancelToken


class Transport(Protocol):
    async def read_power(self, device: Lighthouse, token: CancelToken) -> bool:
        """Open one session and return the device's power state."""

    async def write_power(self, device: Lighthouse, on: bool, token: CancelToken) -> None:
        """Open one session and switch the device on or off."""

    async def identify(self, device: Lighthouse, token: CancelToken) -> None:
        """Open one session and trigger the identify pulse."""


class Scanner(Protocol):
    def discover(self, timeout_s: float) -> AsyncIterator[DetectedDevice]:
        """Scan for `timeout_s` seconds, then yield every named device seen."""
