"""Discovery scan and reconciliation of the lighthouse registry."""

from __future__ import annotations

import enum
import logging

from lighthousectl.core.accessories import AccessoryBridge
from lighthousectl.core.engine import LighthouseEngine
from lighthousectl.core.errors import AdapterUnavailableError, LighthouseError
from lighthousectl.core.model import (
    Accessory,
    Command,
    CommandKind,
    DetectedDevice,
    Lighthouse,
    ReconcileResult,
    Settings,
)
from lighthousectl.transports.base import Scanner

LOGGER = logging.getLogger(__name__)


class ScanState(enum.Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    RECONCILING = "reconciling"


class DiscoveryReconciler:
    """Runs one bounded scan and brings registry and accessories in line with it.

    Accepted devices are registered (reusing a cached accessory with the same
    name) and get one initial status refresh. Allow-listed names that were not
    seen stay published but disabled. Everything else that was known before and
    not seen now is removed.
    """

    def __init__(
        self,
        settings: Settings,
        scanner: Scanner,
        engine: LighthouseEngine,
        bridge: AccessoryBridge,
    ) -> None:
        self.state = ScanState.IDLE
        self._settings = settings
        self._scanner = scanner
        self._engine = engine
        self._bridge = bridge

    async def run(self) -> ReconcileResult:
        if self.state is not ScanState.IDLE:
            raise LighthouseError(f"Discovery already in progress ({self.state.value})")

        self.state = ScanState.SCANNING
        try:
            observed: dict[str, DetectedDevice] = {}
            adapter_ok = True
            try:
                async for detected in self._scanner.discover(self._settings.scan_timeout_s):
                    if not self._settings.accepts(detected.name) or detected.name in observed:
                        continue
                    LOGGER.info("Found %s", detected.name)
                    observed[detected.name] = detected
            except AdapterUnavailableError as exc:
                LOGGER.error("Scanning unavailable, lighthouses cannot be controlled: %s", exc)
                self._engine.mark_adapter_unavailable(str(exc))
                adapter_ok = False

            self.state = ScanState.RECONCILING
            return self._reconcile(observed, adapter_ok=adapter_ok)
        finally:
            self.state = ScanState.IDLE

    def _reconcile(self, observed: dict[str, DetectedDevice], *, adapter_ok: bool) -> ReconcileResult:
        cached = {accessory.name: accessory for accessory in self._bridge.cached_accessories()}
        added: list[str] = []
        rehydrated: list[str] = []
        disabled: list[str] = []

        for name, detected in observed.items():
            accessory = cached.pop(name, None)
            if accessory is None:
                accessory = Accessory.for_name(name)
                added.append(name)
            else:
                rehydrated.append(name)
            self._bridge.register(accessory)
            device = self._engine.register_device(Lighthouse.from_detected(detected))
            self._engine.enqueue(Command(device=device, kind=CommandKind.REFRESH_STATUS))

        keep = list(self._settings.lighthouses or ())
        if not adapter_ok:
            # Nothing could be observed, so a missing device proves nothing.
            keep.extend(name for name in cached if name not in keep)
        for name in keep:
            if name in observed:
                continue
            accessory = cached.pop(name, None) or Accessory.for_name(name)
            self._bridge.register(accessory)
            self._engine.register_device(Lighthouse(name=name, disabled=True))
            LOGGER.warning("%s was not found; it will report errors until the next restart", name)
            disabled.append(name)

        stale = list(cached.values())
        for device in self._engine.registry:
            if device.name not in observed and device.name not in disabled and device.name not in cached:
                stale.append(Accessory.for_name(device.name))
        for accessory in stale:
            self._engine.remove_device(accessory.name)
        if stale:
            self._bridge.unregister(stale)

        return ReconcileResult(
            added=tuple(added),
            rehydrated=tuple(rehydrated),
            disabled=tuple(disabled),
            removed=tuple(accessory.name for accessory in stale),
        )
