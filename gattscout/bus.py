from __future__ import annotations

import asyncio
from collections import defaultdict
from typing import Any, Dict, List, Type


class EventBus:
    def __init__(self) -> None:
        self._queues: Dict[Type[Any], List[asyncio.Queue[Any]]] = defaultdict(list)

    def subscribe(self, *event_types: Type[Any]) -> asyncio.Queue[Any]:
        """Return one queue receiving every event of the given types, in publish order."""
        queue: asyncio.Queue[Any] = asyncio.Queue()
        for event_type in event_types:
            self._queues[event_type].append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue[Any]) -> None:
        for queues in self._queues.values():
            while queue in queues:
                queues.remove(queue)

    def publish_nowait(self, event: Any) -> None:
        # Radio callbacks are synchronous; queues are unbounded so this never blocks.
        # asyncio.Queue is not thread-safe: call from the event loop thread only.
        for queue in self._queues.get(type(event), []):
            queue.put_nowait(event)

    async def publish(self, event: Any) -> None:
        queues = self._queues.get(type(event), [])
        for queue in queues:
            await queue.put(event)
