"""Per-device status polling."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from lighthousectl.core.model import Command, CommandKind, Lighthouse

LOGGER = logging.getLogger(__name__)


class PollScheduler:
    """Keeps at most one pending poll timer per lighthouse.

    `arm` always clears the previous timer first, so re-arming after every
    refresh never stacks polls for the same device.
    """

    def __init__(self, interval_s: float, enqueue: Callable[[Command], None]) -> None:
        self.interval_s = interval_s
        self._enqueue = enqueue

    def arm(self, device: Lighthouse) -> asyncio.TimerHandle:
        self.cancel(device)
        loop = asyncio.get_running_loop()
        device.poll_timer = loop.call_later(self.interval_s, self._fire, device)
        return device.poll_timer

    def cancel(self, device: Lighthouse) -> None:
        if device.poll_timer is not None:
            device.poll_timer.cancel()
            device.poll_timer = None

    def _fire(self, device: Lighthouse) -> None:
        device.poll_timer = None
        LOGGER.debug("%s: poll due", device.name)
        self._enqueue(Command(device=device, kind=CommandKind.REFRESH_STATUS))
