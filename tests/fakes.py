from __future__ import annotations

import asyncio
import uuid
from collections import Counter
from typing import Dict, List, Optional, Tuple

from gattscout.errors import EnumerationError
from gattscout.events import AdvertisementEvent, CharacteristicDescriptor, ServiceDescriptor


def make_uuid(n: int) -> uuid.UUID:
    return uuid.UUID(int=n)


class ListSink:
    def __init__(self) -> None:
        self.blocks: List[str] = []

    def emit(self, text: str) -> None:
        self.blocks.append(text)

    @property
    def text(self) -> str:
        return "\n".join(self.blocks)


class FakeRadio:
    """
    In-memory radio stack. ``profiles`` maps an address to a list of
    (service uuid, [characteristic uuids]) pairs.
    """

    def __init__(
        self,
        profiles: Optional[Dict[int, List[Tuple[uuid.UUID, List[uuid.UUID]]]]] = None,
        *,
        delay: float = 0.0,
        fail_services: Optional[Dict[int, Exception]] = None,
        fail_characteristics: Optional[Dict[Tuple[int, uuid.UUID], Exception]] = None,
        start_error: Optional[Exception] = None,
    ) -> None:
        self.profiles = profiles or {}
        self.delay = delay
        self.fail_services = fail_services or {}
        self.fail_characteristics = fail_characteristics or {}
        self.start_error = start_error
        self.on_advertisement = None
        self.on_stopped = None
        self.start_calls = 0
        self.stop_calls = 0
        self.service_calls: Counter = Counter()
        self.characteristic_calls: List[Tuple[int, uuid.UUID]] = []
        self.released: Counter = Counter()
        self.active = 0
        self.max_active = 0
        self.closed = False

    async def start_scan(self, on_advertisement, on_stopped) -> None:
        self.start_calls += 1
        if self.start_error is not None:
            raise self.start_error
        self.on_advertisement = on_advertisement
        self.on_stopped = on_stopped

    async def stop_scan(self) -> None:
        self.stop_calls += 1
        on_stopped = self.on_stopped
        self.on_advertisement = None
        self.on_stopped = None
        if on_stopped:
            on_stopped()

    def advertise(self, event: AdvertisementEvent) -> None:
        if self.on_advertisement:
            self.on_advertisement(event)

    async def get_services(self, address: int) -> List[ServiceDescriptor]:
        self.service_calls[address] += 1
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delay)
            if address in self.fail_services:
                raise self.fail_services[address]
            return [
                ServiceDescriptor(uuid=service_uuid, address=address)
                for service_uuid, _chars in self.profiles.get(address, [])
            ]
        finally:
            self.active -= 1

    async def get_characteristics(
        self, address: int, service_uuid: uuid.UUID, *, handle: Optional[int] = None
    ):
        self.characteristic_calls.append((address, service_uuid))
        await asyncio.sleep(self.delay)
        if (address, service_uuid) in self.fail_characteristics:
            raise self.fail_characteristics[(address, service_uuid)]
        for svc, chars in self.profiles.get(address, []):
            if svc == service_uuid:
                return [
                    CharacteristicDescriptor(uuid=c, service_uuid=svc, address=address)
                    for c in chars
                ]
        raise EnumerationError(f"unknown service {service_uuid}", address)

    async def release(self, address: int) -> None:
        self.released[address] += 1

    async def close(self) -> None:
        self.closed = True
