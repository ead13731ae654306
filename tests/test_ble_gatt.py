from __future__ import annotations

import asyncio

import pytest
from bleak.exc import BleakError

from lighthousectl.core.errors import (
    AttributeResolutionError,
    OperationAbandonedError,
    TransportConnectError,
    TransportReadError,
    TransportTimeoutError,
    TransportWriteError,
)
from lighthousectl.core.model import AttributeHandles, Lighthouse
from lighthousectl.core.racer import CancelToken, TimeoutRacer
from lighthousectl.transports.ble_gatt import (
    CONTROL_SERVICE_UUID,
    IDENTIFY_CHAR_UUID,
    POWER_CHAR_UUID,
    BLEGATTTransport,
    decode_power,
    encode_power,
)


class FakeCharacteristic:
    def __init__(self, handle: int) -> None:
        self.handle = handle


class FakeService:
    handle = 10

    def __init__(self) -> None:
        self.characteristics = {
            POWER_CHAR_UUID: FakeCharacteristic(12),
            IDENTIFY_CHAR_UUID: FakeCharacteristic(14),
        }

    def get_characteristic(self, uuid: str) -> FakeCharacteristic | None:
        return self.characteristics.get(uuid)


class FakeServices:
    def __init__(self, lookups: list[str], present: bool) -> None:
        self.lookups = lookups
        self.present = present

    def get_service(self, uuid: str) -> FakeService | None:
        self.lookups.append(uuid)
        if self.present and uuid == CONTROL_SERVICE_UUID:
            return FakeService()
        return None


class FakeClient:
    def __init__(
        self,
        target: str,
        lookups: list[str],
        *,
        power: bytes = b"\x01",
        connect_delay_s: float = 0.0,
        connect_error: Exception | None = None,
        write_error: Exception | None = None,
        service_present: bool = True,
    ) -> None:
        self.target = target
        self.power = power
        self.connect_delay_s = connect_delay_s
        self.connect_error = connect_error
        self.write_error = write_error
        self.services = FakeServices(lookups, service_present)
        self.reads: list[int] = []
        self.writes: list[tuple[int, bytes, bool]] = []
        self.disconnected = False

    async def connect(self) -> None:
        await asyncio.sleep(self.connect_delay_s)
        if self.connect_error is not None:
            raise self.connect_error

    async def read_gatt_char(self, handle: int) -> bytearray:
        self.reads.append(handle)
        return bytearray(self.power)

    async def write_gatt_char(self, handle: int, data: bytes, response: bool = False) -> None:
        if self.write_error is not None:
            raise self.write_error
        self.writes.append((handle, data, response))

    async def disconnect(self) -> bool:
        self.disconnected = True
        return True


class ClientFactory:
    def __init__(self, **behaviour) -> None:
        self.behaviour = behaviour
        self.lookups: list[str] = []
        self.clients: list[FakeClient] = []

    def __call__(self, target: str, timeout: float) -> FakeClient:
        client = FakeClient(target, self.lookups, **self.behaviour)
        self.clients.append(client)
        return client


def _device() -> Lighthouse:
    return Lighthouse(name="LHB-1234ABCD", address="AA:BB:CC:DD:EE:FF")


def test_power_encoding() -> None:
    assert encode_power(True) == b"\x01"
    assert encode_power(False) == b"\x00"
    assert decode_power(b"\x00") is False
    assert decode_power(bytearray(b"\x01")) is True
    assert decode_power(b"\x0b") is True
    with pytest.raises(TransportReadError):
        decode_power(b"")


def test_read_power_resolves_handles_once_and_disconnects() -> None:
    factory = ClientFactory(power=b"\x00")
    transport = BLEGATTTransport(client_factory=factory)
    device = _device()

    async def scenario() -> list[bool]:
        return [
            await transport.read_power(device, CancelToken()),
            await transport.read_power(device, CancelToken()),
        ]

    assert asyncio.run(scenario()) == [False, False]
    assert device.handles == AttributeHandles(service=10, power=12, identify=14)
    assert factory.lookups == [CONTROL_SERVICE_UUID]
    assert [client.reads for client in factory.clients] == [[12], [12]]
    assert all(client.disconnected for client in factory.clients)
    assert factory.clients[0].target == "AA:BB:CC:DD:EE:FF"


def test_write_power_and_identify_payloads() -> None:
    factory = ClientFactory()
    transport = BLEGATTTransport(client_factory=factory)
    device = _device()

    async def scenario() -> None:
        await transport.write_power(device, True, CancelToken())
        await transport.write_power(device, False, CancelToken())
        await transport.identify(device, CancelToken())

    asyncio.run(scenario())
    writes = [write for client in factory.clients for write in client.writes]
    assert writes == [(12, b"\x01", True), (12, b"\x00", True), (14, b"\x01", True)]


def test_connect_failure_still_disconnects() -> None:
    factory = ClientFactory(connect_error=BleakError("Device not found"))
    transport = BLEGATTTransport(client_factory=factory)

    with pytest.raises(TransportConnectError):
        asyncio.run(transport.read_power(_device(), CancelToken()))
    assert factory.clients[0].disconnected


def test_write_failure_is_wrapped_and_disconnects() -> None:
    factory = ClientFactory(write_error=BleakError("GATT error"))
    transport = BLEGATTTransport(client_factory=factory)

    with pytest.raises(TransportWriteError):
        asyncio.run(transport.write_power(_device(), True, CancelToken()))
    assert factory.clients[0].disconnected


def test_missing_service_raises_resolution_error() -> None:
    factory = ClientFactory(service_present=False)
    transport = BLEGATTTransport(client_factory=factory)
    device = _device()

    with pytest.raises(AttributeResolutionError):
        asyncio.run(transport.identify(device, CancelToken()))
    assert device.handles is None
    assert factory.clients[0].disconnected


def test_cancelled_token_skips_operation() -> None:
    factory = ClientFactory()
    transport = BLEGATTTransport(client_factory=factory)
    token = CancelToken()
    token.cancel()

    with pytest.raises(OperationAbandonedError):
        asyncio.run(transport.write_power(_device(), True, token))
    assert factory.clients[0].writes == []
    assert factory.clients[0].disconnected


def test_slow_connect_times_out_and_abandoned_session_closes() -> None:
    factory = ClientFactory(connect_delay_s=0.5)
    transport = BLEGATTTransport(client_factory=factory)
    racer = TimeoutRacer()
    device = _device()

    async def scenario() -> None:
        with pytest.raises(TransportTimeoutError):
            await racer.run(lambda token: transport.read_power(device, token), 0.1)
        assert not factory.clients[0].disconnected
        await asyncio.sleep(0.6)

    asyncio.run(scenario())
    client = factory.clients[0]
    assert client.disconnected
    assert client.reads == []
    assert racer.abandoned == 0
