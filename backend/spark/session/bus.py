"""Per-room publish/subscribe fan-out.

Publishing is synchronous and non-blocking: each subscriber owns an unbounded
queue and ``publish`` appends to every queue of the room in turn, so all
subscribers observe events in publish order. The bus keeps no history. A
subscriber attached after an event was published never sees that event.
"""

from __future__ import annotations

import asyncio
import logging
from itertools import count
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from spark.messaging.events import RoomEvent

logger = logging.getLogger(__name__)

_CLOSED = object()


class Subscription:
    """One listener's view of a room channel.

    Iterate with ``async for`` to receive events until the subscription is
    closed, either by the caller or because the room was torn down.
    """

    def __init__(self, bus: EventBus, room_id: str, subscription_id: int) -> None:
        self._bus = bus
        self.room_id = room_id
        self.subscription_id = subscription_id
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _deliver(self, event: RoomEvent) -> None:
        self._queue.put_nowait(event)

    def _end(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)

    def close(self) -> None:
        """Detach from the bus. Safe to call more than once."""
        self._bus.unsubscribe(self)

    async def get(self) -> RoomEvent | None:
        """Wait for the next event. Returns None once the subscription has ended."""
        item = await self._queue.get()
        if item is _CLOSED:
            # keep the sentinel so later readers also see the end
            self._queue.put_nowait(_CLOSED)
            return None
        return item  # type: ignore[return-value]

    def drain(self) -> list[RoomEvent]:
        """Return every event already delivered without waiting."""
        events: list[RoomEvent] = []
        while not self._queue.empty():
            item = self._queue.get_nowait()
            if item is _CLOSED:
                self._queue.put_nowait(_CLOSED)
                break
            events.append(item)  # type: ignore[arg-type]
        return events

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> RoomEvent:
        event = await self.get()
        if event is None:
            raise StopAsyncIteration
        return event

    async def __aenter__(self) -> Subscription:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()


class EventBus:
    def __init__(self) -> None:
        self._channels: dict[str, dict[int, Subscription]] = {}  # room_id -> id -> Subscription
        self._ids = count(1)

    def subscribe(self, room_id: str) -> Subscription:
        subscription = Subscription(self, room_id, next(self._ids))
        self._channels.setdefault(room_id, {})[subscription.subscription_id] = subscription
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove a listener. Unknown or already removed listeners are ignored."""
        channel = self._channels.get(subscription.room_id)
        if channel is not None:
            channel.pop(subscription.subscription_id, None)
            if not channel:
                self._channels.pop(subscription.room_id, None)
        subscription._end()  # noqa: SLF001

    def publish(self, room_id: str, event: RoomEvent) -> int:
        """Deliver ``event`` to every current listener of ``room_id``. Returns the listener count."""
        channel = self._channels.get(room_id)
        if not channel:
            return 0
        for subscription in list(channel.values()):
            subscription._deliver(event)  # noqa: SLF001
        logger.debug("published %s to %d listener(s)", event.type, len(channel))
        return len(channel)

    def close_room(self, room_id: str) -> None:
        """End every subscription of a torn-down room."""
        channel = self._channels.pop(room_id, None)
        if not channel:
            return
        for subscription in channel.values():
            subscription._end()  # noqa: SLF001

    def subscriber_count(self, room_id: str | None = None) -> int:
        if room_id is not None:
            return len(self._channels.get(room_id, {}))
        return sum(len(channel) for channel in self._channels.values())
