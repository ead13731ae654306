"""Core data models used across config, engine, discovery, and CLI."""

from __future__ import annotations

import asyncio
import enum
import uuid
from dataclasses import dataclass, field
from typing import Any

DEFAULT_NAME_PREFIX = "LHB-"
MANUFACTURER = "Valve Corporation"
MODEL = "Lighthouse 2.0"

_ACCESSORY_NAMESPACE = uuid.UUID("6f2c4a52-7d0e-4b8a-9a57-1c6f0d5e3b21")


@dataclass(frozen=True)
class Settings:
    name: str = "Lighthouses"
    lighthouses: tuple[str, ...] | None = None
    retries: int = 3
    scan_timeout_s: float = 10.0
    ble_timeout_s: float = 1.0
    update_frequency_s: float = 60.0
    name_prefix: str = DEFAULT_NAME_PREFIX

    def accepts(self, name: str | None) -> bool:
        if not name:
            return False
        if self.lighthouses:
            return name in self.lighthouses
        return name.startswith(self.name_prefix)


class CommandKind(enum.Enum):
    IDENTIFY = "identify"
    POWER_ON = "power_on"
    POWER_OFF = "power_off"
    REFRESH_STATUS = "refresh_status"

    @property
    def is_power(self) -> bool:
        return self in (CommandKind.POWER_ON, CommandKind.POWER_OFF)


@dataclass(frozen=True)
class DetectedDevice:
    address: str
    name: str
    handle: Any = None


@dataclass(frozen=True)
class AttributeHandles:
    service: int
    power: int
    identify: int


@dataclass(eq=False)
class Lighthouse:
    """Registry entry for one base station.

    `handles` is filled by the transport on first contact and reused until the
    process exits. `poll_timer` is owned by the poll scheduler.
    """

    name: str
    address: str | None = None
    handle: Any = None
    handles: AttributeHandles | None = None
    last_success: float | None = None
    write_failures: int = 0
    read_failures: int = 0
    poll_timer: asyncio.TimerHandle | None = None
    disabled: bool = False

    @classmethod
    def from_detected(cls, device: DetectedDevice) -> Lighthouse:
        return cls(name=device.name, address=device.address, handle=device.handle)


@dataclass(frozen=True)
class Command:
    device: Lighthouse
    kind: CommandKind
    attempt: int = 1
    reply: asyncio.Future[Any] | None = field(default=None, compare=False)

    @property
    def target_state(self) -> bool:
        return self.kind is CommandKind.POWER_ON


@dataclass
class Accessory:
    name: str
    uuid: str
    manufacturer: str = MANUFACTURER
    model: str = MODEL
    serial_number: str = ""
    on: bool | None = None

    @classmethod
    def for_name(cls, name: str) -> Accessory:
        return cls(name=name, uuid=accessory_uuid(name), serial_number=name)


def accessory_uuid(name: str) -> str:
    return str(uuid.uuid5(_ACCESSORY_NAMESPACE, name))


@dataclass(frozen=True)
class ReconcileResult:
    added: tuple[str, ...] = ()
    rehydrated: tuple[str, ...] = ()
    disabled: tuple[str, ...] = ()
    removed: tuple[str, ...] = ()
