from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Optional, Tuple


@dataclass(frozen=True, slots=True)
class AdvertisementEvent:
    address: int
    name: str = ""
    rssi: int = 0
    payload: bytes = b""
    tx_power: Optional[int] = None
    service_uuids: Tuple[str, ...] = ()
    timestamp: float = field(default_factory=time.time, compare=False)


@dataclass(frozen=True, slots=True)
class ServiceDescriptor:
    uuid: uuid.UUID
    address: Optional[int] = None
    description: str = ""
    # Attribute handle; tells apart repeated instances of one service UUID.
    handle: Optional[int] = None


@dataclass(frozen=True, slots=True)
class CharacteristicDescriptor:
    uuid: uuid.UUID
    service_uuid: Optional[uuid.UUID] = None
    address: Optional[int] = None
    properties: Tuple[str, ...] = ()
    user_description: str = "no description available"


@dataclass(slots=True)
class ScanStopped:
    timestamp: float = field(default_factory=time.time)


@dataclass(slots=True)
class ScanCompleted:
    duration_sec: float
    timestamp: float = field(default_factory=time.time)
