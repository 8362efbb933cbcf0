from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import List, Optional, Protocol

from rich.console import Console

from .events import AdvertisementEvent, CharacteristicDescriptor, ServiceDescriptor
from .radio import format_address


def format_advertisement(event: AdvertisementEvent) -> str:
    name = event.name or "(no name)"
    line = f"[{format_address(event.address)}] {name} rssi={event.rssi}dBm"
    if event.tx_power is not None:
        line += f" tx={event.tx_power}dBm"
    if event.payload:
        line += f" data={event.payload.hex()}"
    return line


@dataclass
class ServiceListing:
    service: ServiceDescriptor
    characteristics: List[CharacteristicDescriptor] = field(default_factory=list)


@dataclass
class DiscoveryReport:
    """
    GATT profile of one newly-seen device.

    ``services`` stays ``None`` when the service list itself could not be
    fetched; ``error`` is set whenever enumeration stopped early.
    """

    advertisement: AdvertisementEvent
    services: Optional[List[ServiceListing]] = None
    service_count: int = 0
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    def lines(self) -> List[str]:
        summary = format_advertisement(self.advertisement)
        if self.services is None:
            return [f"{summary} >>> enumeration failed: {self.error}"]

        out = [f"{summary} >>> {self.service_count} service(s)"]
        for listing in self.services:
            header = f"- {listing.service.uuid}"
            if listing.service.description:
                header += f" ({listing.service.description})"
            out.append(header)
            for characteristic in listing.characteristics:
                out.append(f"  {characteristic.uuid} [{characteristic.user_description}]")
        if self.error is not None:
            out.append(f"! enumeration failed: {self.error}")
        return out

    def render(self) -> str:
        return "\n".join(self.lines())


class ReportSink(Protocol):
    def emit(self, text: str) -> None:
        ...


class ConsoleSink:
    """Writes each text block to a rich console in a single call."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self._console = console or Console(highlight=False)
        self._lock = threading.Lock()

    def emit(self, text: str) -> None:
        with self._lock:
            self._console.print(text, markup=False, highlight=False, soft_wrap=True)
