from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Optional, Set, TypeVar

from .events import AdvertisementEvent, ScanCompleted, ScanStopped
from .radio import RadioStack, format_address
from .report import DiscoveryReport, ReportSink, ServiceListing, format_advertisement
from .seen import SeenDevices

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _describe_failure(exc: BaseException) -> str:
    if isinstance(exc, asyncio.TimeoutError):
        return "timed out"
    text = str(exc)
    return f"{type(exc).__name__}: {text}" if text else type(exc).__name__


class DiscoveryOrchestrator:
    """
    Turns a stream of advertisements into one GATT report per new device.

    Devices are enumerated concurrently (at most ``max_concurrent`` at once);
    within a device, services and then their characteristics are fetched
    strictly in order.
    """

    def __init__(
        self,
        radio: RadioStack,
        sink: ReportSink,
        *,
        max_concurrent: int = 4,
        call_timeout: float = 20.0,
        echo_advertisements: bool = True,
        seen: Optional[SeenDevices] = None,
    ) -> None:
        self._radio = radio
        self._sink = sink
        self._slots = asyncio.Semaphore(max_concurrent)
        self._call_timeout = call_timeout
        self._echo = echo_advertisements
        self.seen = seen or SeenDevices()
        self._tasks: Set[asyncio.Task[Any]] = set()
        self.reports_emitted = 0
        self.failures = 0

    async def _call(self, awaitable: Awaitable[T]) -> T:
        return await asyncio.wait_for(awaitable, self._call_timeout)

    async def _enumerate(self, event: AdvertisementEvent) -> DiscoveryReport:
        address = event.address
        report = DiscoveryReport(advertisement=event)
        try:
            services = await self._call(self._radio.get_services(address))
            report.service_count = len(services)
            report.services = []
            for service in services:
                characteristics = await self._call(
                    self._radio.get_characteristics(address, service.uuid, handle=service.handle)
                )
                report.services.append(ServiceListing(service, list(characteristics)))
        except Exception as exc:
            report.error = _describe_failure(exc)
            logger.warning("Enumeration of %s failed: %s", format_address(address), report.error)
        finally:
            try:
                await self._radio.release(address)
            except Exception as exc:
                logger.debug("Release of %s failed: %s", format_address(address), exc)
        return report

    async def handle_advertisement(self, event: AdvertisementEvent) -> Optional[DiscoveryReport]:
        if self._echo:
            self._sink.emit(format_advertisement(event))

        if not self.seen.add(event.address):
            return None

        logger.debug("New device %s, enumerating.", format_address(event.address))
        async with self._slots:
            report = await self._enumerate(event)

        self._sink.emit(report.render())
        self.reports_emitted += 1
        if report.failed:
            self.failures += 1
        return report

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Advertisement handler crashed: %r", exc, exc_info=exc)

    def dispatch(self, event: AdvertisementEvent) -> asyncio.Task[Any]:
        task = asyncio.create_task(self.handle_advertisement(event))
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    async def run(self, queue: asyncio.Queue[Any]) -> None:
        """Consume ``queue`` until a ``ScanStopped`` event arrives."""
        while True:
            event = await queue.get()
            if isinstance(event, ScanStopped):
                logger.debug("Scan stopped; %d enumeration(s) still in flight.", len(self._tasks))
                return
            if isinstance(event, ScanCompleted):
                logger.info("Scan completed after %.1fs.", event.duration_sec)
            elif isinstance(event, AdvertisementEvent):
                self.dispatch(event)

    async def join(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def reset(self) -> None:
        self.seen.clear()

    @property
    def in_flight(self) -> int:
        return len(self._tasks)
