from __future__ import annotations

import threading
from typing import Set


class SeenDevices:
    """
    Addresses already handed to enumeration during the current session.

    ``add`` is the only way in and is atomic: two advertisements racing for
    the same address get exactly one ``True`` between them.
    """

    def __init__(self) -> None:
        self._addresses: Set[int] = set()
        self._lock = threading.Lock()

    def add(self, address: int) -> bool:
        with self._lock:
            if address in self._addresses:
                return False
            self._addresses.add(address)
            return True

    def clear(self) -> None:
        with self._lock:
            self._addresses.clear()

    def __contains__(self, address: object) -> bool:
        with self._lock:
            return address in self._addresses

    def __len__(self) -> int:
        with self._lock:
            return len(self._addresses)
