"""
BLE device discovery: scan for advertisements and list the GATT profile of
every newly-seen device.
"""

from .errors import DiscoveryError, EnumerationError, RadioUnavailableError
from .events import AdvertisementEvent, CharacteristicDescriptor, ServiceDescriptor
from .orchestrator import DiscoveryOrchestrator
from .radio import BleakRadio, RadioStack
from .report import ConsoleSink, DiscoveryReport
from .session import ScanSession, ScanState

__all__ = [
    "AdvertisementEvent",
    "BleakRadio",
    "CharacteristicDescriptor",
    "ConsoleSink",
    "DiscoveryError",
    "DiscoveryOrchestrator",
    "DiscoveryReport",
    "EnumerationError",
    "RadioStack",
    "RadioUnavailableError",
    "ScanSession",
    "ScanState",
    "ServiceDescriptor",
]
