"""BLE GATT transport implementation."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

from bleak import BleakClient
from bleak.exc import BleakError

from lighthousectl.core.errors import (
    AttributeResolutionError,
    TransportConnectError,
    TransportReadError,
    TransportWriteError,
)
from lighthousectl.core.model import AttributeHandles, Lighthouse
from lighthousectl.core.racer import CancelToken

CONTROL_SERVICE_UUID = "00001523-1212-efde-1523-785feabcd124"
POWER_CHAR_UUID = "00001525-1212-efde-1523-785feabcd124"
IDENTIFY_CHAR_UUID = "00008421-1212-efde-1523-785feabcd124"

OFF_VALUE = b"\x00"
ON_VALUE = b"\x01"

LOGGER = logging.getLogger(__name__)

_BLE_ERRORS = (BleakError, asyncio.TimeoutError, OSError)


def encode_power(on: bool) -> bytes:
    return ON_VALUE if on else OFF_VALUE


def decode_power(value: bytes | bytearray) -> bool:
    if not value:
        raise TransportReadError("Power characteristic returned no data")
    return bytes(value) != OFF_VALUE


class BLEGATTTransport:
    """One connect/operate/disconnect cycle per call.

    The connection is released on every exit path, including sessions that
    keep running after the caller stopped waiting for them.
    """

    def __init__(
        self,
        *,
        client_factory: Callable[..., Any] = BleakClient,
        connect_timeout_s: float = 10.0,
    ) -> None:
        self._client_factory = client_factory
        self._connect_timeout_s = connect_timeout_s

    async def read_power(self, device: Lighthouse, token: CancelToken) -> bool:
        async with self._session(device, token) as (client, handles):
            token.raise_if_cancelled("power read")
            try:
                data = await client.read_gatt_char(handles.power)
            except _BLE_ERRORS as exc:
                raise TransportReadError(f"Reading power state of {device.name} failed: {exc}") from exc
            return decode_power(data)

    async def write_power(self, device: Lighthouse, on: bool, token: CancelToken) -> None:
        async with self._session(device, token) as (client, handles):
            token.raise_if_cancelled("power write")
            await self._write(client, device, handles.power, encode_power(on))

    async def identify(self, device: Lighthouse, token: CancelToken) -> None:
        async with self._session(device, token) as (client, handles):
            token.raise_if_cancelled("identify write")
            await self._write(client, device, handles.identify, ON_VALUE)

    @asynccontextmanager
    async def _session(
        self, device: Lighthouse, token: CancelToken
    ) -> AsyncIterator[tuple[Any, AttributeHandles]]:
        client = self._client_factory(device.handle or device.address, timeout=self._connect_timeout_s)
        try:
            try:
                await client.connect()
            except _BLE_ERRORS as exc:
                raise TransportConnectError(f"BLE connect failed for {device.name}: {exc}") from exc
            token.raise_if_cancelled("attribute resolution")
            yield client, self._handles(device, client)
        finally:
            await self._disconnect(client, device)

    @staticmethod
    def _handles(device: Lighthouse, client: Any) -> AttributeHandles:
        if device.handles is not None:
            return device.handles

        service = client.services.get_service(CONTROL_SERVICE_UUID)
        if service is None:
            raise AttributeResolutionError(f"{device.name} does not expose control service {CONTROL_SERVICE_UUID}")
        power = service.get_characteristic(POWER_CHAR_UUID)
        identify = service.get_characteristic(IDENTIFY_CHAR_UUID)
        if power is None or identify is None:
            raise AttributeResolutionError(f"{device.name} is missing power/identify characteristics")

        device.handles = AttributeHandles(
            service=service.handle,
            power=power.handle,
            identify=identify.handle,
        )
        LOGGER.debug("%s: resolved handles %s", device.name, device.handles)
        return device.handles

    @staticmethod
    async def _write(client: Any, device: Lighthouse, handle: int, payload: bytes) -> None:
        try:
            await client.write_gatt_char(handle, payload, response=True)
        except _BLE_ERRORS as exc:
            raise TransportWriteError(f"Writing to {device.name} failed: {exc}") from exc

    @staticmethod
    async def _disconnect(client: Any, device: Lighthouse) -> None:
        try:
            await client.disconnect()
        except Exception as exc:
            LOGGER.debug("%s: disconnect failed: %s", device.name, exc)
