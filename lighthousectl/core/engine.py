"""Serialized command execution against the shared Bluetooth radio.

Every operation on every lighthouse goes through one FIFO queue drained by a
single worker task. The radio only tolerates one session at a time, so the
queue is the lock: nothing may call the transport without going through
`enqueue`.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from collections.abc import Callable
from dataclasses import replace
from typing import Any

from lighthousectl.core.accessories import StateSink
from lighthousectl.core.errors import (
    AdapterUnavailableError,
    DeviceDisabledError,
    LighthouseError,
)
from lighthousectl.core.model import Command, CommandKind, Lighthouse, Settings
from lighthousectl.core.racer import TimeoutRacer
from lighthousectl.core.registry import DeviceRegistry
from lighthousectl.core.scheduler import PollScheduler
from lighthousectl.transports.base import Transport

LOGGER = logging.getLogger(__name__)


class LighthouseEngine:
    def __init__(
        self,
        settings: Settings,
        transport: Transport,
        sink: StateSink,
        *,
        racer: TimeoutRacer | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.settings = settings
        self.registry = DeviceRegistry()
        self.scheduler = PollScheduler(settings.update_frequency_s, self.enqueue)
        self.racer = racer or TimeoutRacer()
        self._transport = transport
        self._sink = sink
        self._clock = clock
        self._queue: deque[Command] = deque()
        self._worker: asyncio.Task[None] | None = None
        self._current: Command | None = None
        self._unavailable_reason: str | None = None

    @property
    def busy(self) -> bool:
        return self._worker is not None

    @property
    def pending(self) -> int:
        return len(self._queue)

    @property
    def adapter_available(self) -> bool:
        return self._unavailable_reason is None

    def mark_adapter_unavailable(self, reason: str) -> None:
        self._unavailable_reason = reason

    def register_device(self, device: Lighthouse) -> Lighthouse:
        previous = self.registry.find(device.name)
        if previous is not None and previous is not device:
            self.scheduler.cancel(previous)
        return self.registry.add(device)

    def remove_device(self, name: str) -> Lighthouse | None:
        device = self.registry.pop(name)
        if device is not None:
            self.scheduler.cancel(device)
        return device

    def enqueue(self, command: Command) -> None:
        self._queue.append(command)
        if self._worker is None:
            self._worker = asyncio.get_running_loop().create_task(self._drain())

    async def join(self) -> None:
        """Wait until the queue is empty and the worker is idle."""
        while self._worker is not None:
            await asyncio.shield(self._worker)

    async def stop(self) -> None:
        """Drop queued commands, abandon the running one and clear every poll timer."""
        stopped = LighthouseError("Engine stopped")
        while self._queue:
            self._fail(self._queue.popleft(), stopped)
        worker, current = self._worker, self._current
        if worker is not None:
            worker.cancel()
            try:
                await worker
            except asyncio.CancelledError:
                pass
            self._worker = self._current = None
        if current is not None:
            self._fail(current, stopped)
        for device in self.registry:
            self.scheduler.cancel(device)

    async def set_power(self, name: str, on: bool) -> None:
        device = self._usable(name)
        await self._submit(device, CommandKind.POWER_ON if on else CommandKind.POWER_OFF)

    async def identify(self, name: str) -> None:
        await self._submit(self._usable(name), CommandKind.IDENTIFY)

    async def get_power(self, name: str) -> bool:
        return await self._submit(self._usable(name), CommandKind.REFRESH_STATUS)

    def _usable(self, name: str) -> Lighthouse:
        if self._unavailable_reason is not None:
            raise AdapterUnavailableError(self._unavailable_reason)
        device = self.registry.get(name)
        if device.disabled:
            raise DeviceDisabledError(f"{name} was not found during discovery")
        return device

    async def _submit(self, device: Lighthouse, kind: CommandKind) -> Any:
        reply: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self.enqueue(Command(device=device, kind=kind, reply=reply))
        return await reply

    async def _drain(self) -> None:
        try:
            while self._queue:
                command = self._current = self._queue.popleft()
                try:
                    await self._execute(command)
                except Exception as exc:
                    LOGGER.exception("%s: %s crashed", command.device.name, command.kind.value)
                    self._fail(command, exc)
                self._current = None
        finally:
            self._worker = self._current = None

    async def _execute(self, command: Command) -> None:
        if command.kind.is_power:
            await self._run_power(command)
        elif command.kind is CommandKind.IDENTIFY:
            await self._run_identify(command)
        else:
            await self._run_refresh(command)

    async def _run_power(self, command: Command) -> None:
        device = command.device
        on = command.target_state
        label = "on" if on else "off"
        LOGGER.info("Turning %s %s...", device.name, label)
        try:
            await self.racer.run(
                lambda token: self._transport.write_power(device, on, token),
                self.settings.ble_timeout_s,
                label=f"{device.name} power {label}",
            )
        except Exception as exc:
            if command.attempt < self.settings.retries:
                LOGGER.debug(
                    "%s: power %s attempt %d/%d failed: %s",
                    device.name,
                    label,
                    command.attempt,
                    self.settings.retries,
                    exc,
                )
                self.enqueue(replace(command, attempt=command.attempt + 1))
                return
            device.write_failures += 1
            LOGGER.error("%s: turning %s failed after %d attempts: %s", device.name, label, command.attempt, exc)
            self._sink.update_power(device.name, not on)
            self._fail(command, exc)
            return

        device.write_failures = 0
        device.last_success = self._clock()
        self._sink.update_power(device.name, on)
        self._resolve(command, None)

    async def _run_identify(self, command: Command) -> None:
        device = command.device
        LOGGER.info("Identifying %s...", device.name)
        try:
            await self.racer.run(
                lambda token: self._transport.identify(device, token),
                self.settings.ble_timeout_s,
                label=f"{device.name} identify",
            )
        except Exception as exc:
            LOGGER.error("%s: identify failed: %s", device.name, exc)
            self._fail(command, exc)
            return

        device.last_success = self._clock()
        self._sink.update_power(device.name, True)
        self._resolve(command, None)

    async def _run_refresh(self, command: Command) -> None:
        device = command.device
        try:
            on = await self.racer.run(
                lambda token: self._transport.read_power(device, token),
                self.settings.ble_timeout_s,
                label=f"{device.name} status",
            )
        except Exception as exc:
            device.read_failures += 1
            if command.reply is not None:
                LOGGER.error("%s: status read failed: %s", device.name, exc)
            else:
                LOGGER.debug("%s: status poll failed (%d in a row): %s", device.name, device.read_failures, exc)
            self._fail(command, exc)
        else:
            device.read_failures = 0
            device.last_success = self._clock()
            self._sink.update_power(device.name, on)
            self._resolve(command, on)
        finally:
            if self.registry.owns(device) and not device.disabled:
                self.scheduler.arm(device)

    @staticmethod
    def _resolve(command: Command, value: Any) -> None:
        if command.reply is not None and not command.reply.done():
            command.reply.set_result(value)

    @staticmethod
    def _fail(command: Command, exc: BaseException) -> None:
        if command.reply is not None and not command.reply.done():
            command.reply.set_exception(exc)
