from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Callable, Dict, List, Optional, Protocol

from bleak import BleakClient, BleakScanner
from bleak.backends.device import BLEDevice
from bleak.backends.scanner import AdvertisementData
from bleak.exc import BleakError

from .errors import EnumerationError, RadioUnavailableError
from .events import AdvertisementEvent, CharacteristicDescriptor, ServiceDescriptor

logger = logging.getLogger(__name__)

USER_DESCRIPTION_UUID = "00002901-0000-1000-8000-00805f9b34fb"
NO_DESCRIPTION = "no description available"

AdvertisementCallback = Callable[[AdvertisementEvent], None]
StoppedCallback = Callable[[], None]


class RadioStack(Protocol):
    async def start_scan(
        self, on_advertisement: AdvertisementCallback, on_stopped: StoppedCallback
    ) -> None:
        ...

    async def stop_scan(self) -> None:
        ...

    async def get_services(self, address: int) -> List[ServiceDescriptor]:
        ...

    async def get_characteristics(
        self, address: int, service_uuid: uuid.UUID, *, handle: Optional[int] = None
    ) -> List[CharacteristicDescriptor]:
        ...

    async def release(self, address: int) -> None:
        ...

    async def close(self) -> None:
        ...


def parse_address(text: str) -> int:
    """
    Convert a bleak address string to an integer.

    Linux and Windows report MACs ("AA:BB:CC:DD:EE:FF"); macOS only exposes a
    per-host UUID, which maps to its 128-bit integer.
    """
    cleaned = text.strip()
    if ":" in cleaned or "-" not in cleaned:
        digits = cleaned.replace(":", "")
        if len(digits) == 12:
            try:
                return int(digits, 16)
            except ValueError:
                pass
    try:
        return uuid.UUID(cleaned).int
    except ValueError as exc:
        raise ValueError(f"Unrecognised BLE address {text!r}") from exc


def format_address(address: int) -> str:
    if address < (1 << 48):
        raw = f"{address:012X}"
        return ":".join(raw[i : i + 2] for i in range(0, 12, 2))
    return str(uuid.UUID(int=address)).upper()


def _manufacturer_payload(manufacturer_data: Dict[int, bytes]) -> bytes:
    # Company id little-endian, as it appears in the AD structure.
    return b"".join(
        company.to_bytes(2, "little") + bytes(data)
        for company, data in manufacturer_data.items()
    )


def advertisement_from_bleak(device: BLEDevice, adv: AdvertisementData) -> AdvertisementEvent:
    return AdvertisementEvent(
        address=parse_address(device.address),
        name=adv.local_name or device.name or "",
        rssi=int(adv.rssi) if adv.rssi is not None else 0,
        payload=_manufacturer_payload(adv.manufacturer_data or {}),
        tx_power=adv.tx_power,
        service_uuids=tuple(adv.service_uuids or ()),
    )


async def resolve_services(client: BleakClient):
    """
    Return the client's service collection, forcing discovery on backends
    that connect lazily.
    """
    services = getattr(client, "services", None)

    def _is_empty(coll) -> bool:
        return coll is None or (hasattr(coll, "services") and not coll.services)

    if _is_empty(services):
        get_services = getattr(client, "get_services", None)
        if callable(get_services):
            services = await get_services()

    if _is_empty(services):
        raise EnumerationError("Device exposed no GATT service table.")
    return services


class BleakRadio:
    """
    Radio stack backed by Bleak: a ``BleakScanner`` for advertisements and one
    cached ``BleakClient`` per device for GATT enumeration.
    """

    def __init__(
        self,
        *,
        scanning_mode: str = "active",
        adapter: Optional[str] = None,
        connect_timeout: float = 15.0,
    ) -> None:
        self._scanning_mode = scanning_mode
        self._adapter = adapter
        self._connect_timeout = connect_timeout
        self._scanner: Optional[BleakScanner] = None
        self._on_advertisement: Optional[AdvertisementCallback] = None
        self._on_stopped: Optional[StoppedCallback] = None
        self._devices: Dict[int, BLEDevice] = {}
        self._clients: Dict[int, BleakClient] = {}
        self._connect_locks: Dict[int, asyncio.Lock] = {}

    def _handle_detection(self, device: BLEDevice, adv: AdvertisementData) -> None:
        try:
            event = advertisement_from_bleak(device, adv)
        except ValueError as exc:
            logger.debug("Skipping advertisement: %s", exc)
            return
        self._devices[event.address] = device
        if self._on_advertisement:
            self._on_advertisement(event)

    async def start_scan(
        self, on_advertisement: AdvertisementCallback, on_stopped: StoppedCallback
    ) -> None:
        if self._scanner is not None:
            raise RuntimeError("Scan already running on this radio.")

        kwargs = {}
        if self._adapter:
            kwargs["adapter"] = self._adapter
        try:
            scanner = BleakScanner(
                detection_callback=self._handle_detection,
                scanning_mode=self._scanning_mode,
                **kwargs,
            )
            self._on_advertisement = on_advertisement
            self._on_stopped = on_stopped
            await scanner.start()
        except (BleakError, OSError) as exc:
            self._on_advertisement = None
            self._on_stopped = None
            raise RadioUnavailableError(f"Unable to start BLE scan: {exc}") from exc
        self._scanner = scanner
        logger.debug("Scanner started (mode=%s, adapter=%s)", self._scanning_mode, self._adapter)

    async def stop_scan(self) -> None:
        scanner = self._scanner
        if scanner is None:
            return
        try:
            await scanner.stop()
        except (BleakError, OSError) as exc:
            logger.warning("Error while stopping scanner: %s", exc)
        finally:
            self._scanner = None
            on_stopped = self._on_stopped
            self._on_advertisement = None
            self._on_stopped = None
            if on_stopped:
                on_stopped()

    async def _connect(self, address: int) -> BleakClient:
        lock = self._connect_locks.setdefault(address, asyncio.Lock())
        async with lock:
            client = self._clients.get(address)
            if client is not None and client.is_connected:
                return client

            target = self._devices.get(address) or format_address(address)
            logger.debug("Connecting to %s", format_address(address))
            client = BleakClient(target, timeout=self._connect_timeout)
            try:
                await client.connect()
            except (BleakError, OSError, asyncio.TimeoutError) as exc:
                await self._disconnect(address, client)
                raise EnumerationError(
                    f"Connection to {format_address(address)} failed: {exc}", address
                ) from exc
            except BaseException:
                # Cancelled mid-connect (call timeout): the link may already be up.
                await self._disconnect(address, client)
                raise
            self._clients[address] = client
            return client

    async def get_services(self, address: int) -> List[ServiceDescriptor]:
        client = await self._connect(address)
        try:
            services = await resolve_services(client)
        except BleakError as exc:
            raise EnumerationError(f"Service discovery failed: {exc}", address) from exc
        except EnumerationError:
            return []
        return [
            ServiceDescriptor(
                uuid=uuid.UUID(service.uuid),
                address=address,
                description=service.description or "",
                handle=service.handle,
            )
            for service in services
        ]

    async def _read_user_description(self, client: BleakClient, characteristic) -> str:
        descriptor = characteristic.get_descriptor(USER_DESCRIPTION_UUID)
        if descriptor is None:
            return NO_DESCRIPTION
        try:
            data = await client.read_gatt_descriptor(descriptor.handle)
        except (BleakError, OSError) as exc:
            logger.warning(
                "Couldn't read user description for characteristic %s: %s",
                characteristic.uuid,
                exc,
            )
            return NO_DESCRIPTION
        text = bytes(data).decode("utf-8", errors="ignore").strip("\x00").strip()
        return text or NO_DESCRIPTION

    async def get_characteristics(
        self, address: int, service_uuid: uuid.UUID, *, handle: Optional[int] = None
    ) -> List[CharacteristicDescriptor]:
        client = await self._connect(address)
        try:
            services = await resolve_services(client)
            # By UUID only when no handle is known; bleak rejects ambiguous UUIDs.
            service = services.get_service(handle if handle is not None else str(service_uuid))
        except BleakError as exc:
            raise EnumerationError(f"Service lookup failed: {exc}", address) from exc

        if service is None:
            raise EnumerationError(f"Service {service_uuid} not found on device.", address)

        result: List[CharacteristicDescriptor] = []
        for characteristic in service.characteristics:
            result.append(
                CharacteristicDescriptor(
                    uuid=uuid.UUID(characteristic.uuid),
                    service_uuid=service_uuid,
                    address=address,
                    properties=tuple(characteristic.properties),
                    user_description=await self._read_user_description(client, characteristic),
                )
            )
        return result

    async def _disconnect(self, address: int, client: BleakClient) -> None:
        try:
            if client.is_connected:
                await client.disconnect()
        except (BleakError, OSError) as exc:
            logger.debug("Disconnect from %s failed: %s", format_address(address), exc)

    async def release(self, address: int) -> None:
        client = self._clients.pop(address, None)
        self._connect_locks.pop(address, None)
        if client is not None:
            await self._disconnect(address, client)

    async def close(self) -> None:
        await self.stop_scan()
        for address in list(self._clients):
            await self.release(address)
        self._devices.clear()
