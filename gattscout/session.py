from __future__ import annotations

import asyncio
import enum
import logging
from typing import Optional

from .bus import EventBus
from .events import AdvertisementEvent, ScanStopped
from .radio import RadioStack

logger = logging.getLogger(__name__)


class ScanState(enum.Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    STOPPING = "stopping"


class ScanSession:
    """
    One discovery pass over a radio stack.

    Advertisements and the final ``ScanStopped`` are published on ``bus`` in
    the order the radio delivers them. Idle -> Scanning -> Stopping -> Idle.
    """

    def __init__(self, radio: RadioStack, bus: Optional[EventBus] = None) -> None:
        self._radio = radio
        self.bus = bus or EventBus()
        self._state = ScanState.IDLE
        self._stopped: Optional[asyncio.Event] = None
        self.advertisements_received = 0

    @property
    def state(self) -> ScanState:
        return self._state

    def _on_advertisement(self, event: AdvertisementEvent) -> None:
        if self._state is ScanState.IDLE:
            return
        self.advertisements_received += 1
        self.bus.publish_nowait(event)

    def _on_stopped(self) -> None:
        if self._state is ScanState.IDLE:
            return
        self._state = ScanState.IDLE
        logger.info("Scan stopped after %d advertisement(s).", self.advertisements_received)
        self.bus.publish_nowait(ScanStopped())
        if self._stopped is not None:
            self._stopped.set()

    async def start(self) -> None:
        if self._state is not ScanState.IDLE:
            logger.warning("start() ignored: session is %s.", self._state.value)
            return

        self._stopped = asyncio.Event()
        self.advertisements_received = 0
        self._state = ScanState.SCANNING
        try:
            await self._radio.start_scan(self._on_advertisement, self._on_stopped)
        except Exception:
            self._state = ScanState.IDLE
            raise
        logger.info("Scan started.")

    async def stop(self) -> None:
        if self._state is not ScanState.SCANNING:
            logger.debug("stop() ignored: session is %s.", self._state.value)
            return
        self._state = ScanState.STOPPING
        await self._radio.stop_scan()

    async def wait_stopped(self) -> None:
        if self._stopped is None or self._state is ScanState.IDLE:
            return
        await self._stopped.wait()
