from __future__ import annotations

from typing import Optional


class DiscoveryError(Exception):
    """Base class for errors raised while discovering BLE devices."""


class RadioUnavailableError(DiscoveryError):
    """The Bluetooth adapter is missing, powered off, or access was denied."""


class EnumerationError(DiscoveryError):
    def __init__(self, message: str, address: Optional[int] = None) -> None:
        super().__init__(message)
        self.address = address
