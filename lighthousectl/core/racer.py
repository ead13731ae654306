"""First-to-settle race between a transport session and its deadline."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from lighthousectl.core.errors import OperationAbandonedError, TransportTimeoutError

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class CancelToken:
    """Set once the racer stops waiting for a session.

    Sessions check it between steps so an abandoned session skips the work it
    has not started yet. It never interrupts a step already in progress.
    """

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def raise_if_cancelled(self, step: str) -> None:
        if self._cancelled:
            raise OperationAbandonedError(f"Skipping {step}: operation already timed out")


class TimeoutRacer:
    def __init__(self) -> None:
        self._abandoned: set[asyncio.Task[object]] = set()

    @property
    def abandoned(self) -> int:
        """Number of lost sessions that have not settled yet."""
        return len(self._abandoned)

    async def run(
        self,
        operation: Callable[[CancelToken], Awaitable[T]],
        deadline_s: float,
        *,
        label: str = "operation",
    ) -> T:
        token = CancelToken()
        task = asyncio.ensure_future(operation(token))
        try:
            done, _ = await asyncio.wait({task}, timeout=deadline_s)
        except asyncio.CancelledError:
            self._abandon(task, token)
            raise
        if task in done:
            return task.result()

        self._abandon(task, token)
        raise TransportTimeoutError(f"{label} timed out after {deadline_s:g}s")

    def _abandon(self, task: asyncio.Task[object], token: CancelToken) -> None:
        token.cancel()
        self._abandoned.add(task)
        task.add_done_callback(self._settle_abandoned)

    def _settle_abandoned(self, task: asyncio.Task[object]) -> None:
        self._abandoned.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            LOGGER.debug("Abandoned session finished with %s", exc)
        else:
            LOGGER.debug("Abandoned session finished; result discarded")
