"""Room lifecycle: creation, joining, leaving, membership and idle expiry."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import timedelta
from typing import TYPE_CHECKING

from spark.logic import rules
from spark.logic.enums import GamePhase
from spark.logic.exceptions import (
    NotAuthorizedError,
    RoomFullError,
    RoomInactiveError,
    RoomNotFoundError,
    ServerAtCapacityError,
)
from spark.logic.types import GameSettings, GameState, Player
from spark.messaging.events import PlayerJoinedEvent, PlayerLeftEvent
from spark.session.bus import EventBus
from spark.session.codes import generate_room_code, new_id
from spark.session.models import Room, utcnow
from spark.session.session_index import SessionIndex
from spark.session.store import InMemoryRoomStore
from spark.session.types import CreatedRoom, JoinedRoom, RoomSnapshot

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from spark.messaging.events import RoomEvent
    from spark.session.bus import Subscription
    from spark.session.store import RoomStore

logger = logging.getLogger(__name__)

_ROOM_REAPER_INTERVAL = 30  # seconds between reaper checks
_MAX_CODE_ATTEMPTS = 32


class RoomRegistry:
    """Own every room, its lock, its bus channel and its members' sessions.

    Each room has one ``asyncio.Lock``. Every mutation of a room happens under
    that lock and publishes its events before the lock is released, so a
    state change and its events are observed together.
    """

    def __init__(
        self,
        store: RoomStore | None = None,
        sessions: SessionIndex | None = None,
        bus: EventBus | None = None,
        *,
        max_rooms: int = 0,
        room_ttl_seconds: int = 0,
        code_factory: Callable[[], str] = generate_room_code,
    ) -> None:
        self._store = store if store is not None else InMemoryRoomStore()
        self._sessions = sessions if sessions is not None else SessionIndex()
        self._bus = bus if bus is not None else EventBus()
        self._max_rooms = max_rooms
        self._room_ttl_seconds = room_ttl_seconds
        self._code_factory = code_factory
        self._room_locks: dict[str, asyncio.Lock] = {}
        self._room_reaper_task: asyncio.Task[None] | None = None

    @property
    def bus(self) -> EventBus:
        return self._bus

    @property
    def room_count(self) -> int:
        return len(self._store)

    def get_room(self, room_id: str) -> Room | None:
        return self._store.get(room_id)

    # --- Public API ---

    def create_room(self, host_name: str) -> CreatedRoom:
        """Install a new room in setup with ``host_name`` as player 1."""
        if self._max_rooms and len(self._store) >= self._max_rooms:
            raise ServerAtCapacityError
        room_id = new_id()
        host = Player(id=new_id(), name=host_name, is_host=True, joined_at=utcnow())
        state = GameState(settings=GameSettings(player1_name=host_name), game_phase=GamePhase.SETUP)
        room = Room(room_id=room_id, code=self._unique_code(), host=host, state=state)

        self._store.add(room)
        self._room_locks[room_id] = asyncio.Lock()
        self._sessions.bind(host.id, room_id)
        logger.info("room %s created with code %s", room_id, room.code)
        return CreatedRoom(room_id=room_id, room_code=room.code, player_id=host.id)

    async def join_room(self, room_code: str, guest_name: str) -> JoinedRoom:
        """Fill the guest slot of the room with this join code.

        Raises RoomNotFoundError, RoomFullError or RoomInactiveError, checked in
        that order.
        """
        room = self._store.get_by_code(room_code)
        if room is None:
            raise RoomNotFoundError
        async with self.locked(room.room_id, require_active=False) as room:
            if room.is_full:
                raise RoomFullError
            if not room.active:
                raise RoomInactiveError

            guest = Player(id=new_id(), name=guest_name, is_host=False, joined_at=utcnow())
            room.guest = guest
            room.state = rules.set_player_name(room.state, 2, guest_name)
            room.touch()
            self._sessions.bind(guest.id, room.room_id)
            self.publish(room.room_id, PlayerJoinedEvent(room_id=room.room_id, player=guest))
            logger.info("player %s joined room %s", guest.id, room.room_id)
            return JoinedRoom(
                room_id=room.room_id,
                room_code=room.code,
                player_id=guest.id,
                game_state=room.state,
                host=room.host,
                guest=guest,
            )

    def get_room_state(self, room_id: str, player_id: str) -> GameState:
        return self.authorize(room_id, player_id).state

    def snapshot(self, room_id: str, player_id: str) -> RoomSnapshot:
        room = self.authorize(room_id, player_id)
        return RoomSnapshot(
            room_id=room.room_id,
            room_code=room.code,
            host=room.host,
            guest=room.guest,
            game_state=room.state,
        )

    async def leave_room(self, room_id: str, player_id: str) -> None:
        """Remove a participant from a room.

        The host leaving destroys the room for both participants. The guest
        leaving frees the slot and sends the game back to setup. Leaving a room
        that no longer exists, or that the participant is not in, is a no-op.
        """
        lock = self._room_locks.get(room_id)
        if lock is None:
            self._sessions.unbind(player_id)
            return

        destroyed = False
        async with lock:
            room = self._store.get(room_id)
            if room is None or not room.is_member(player_id):
                return

            if player_id == room.host_id:
                room.active = False
                self._store.remove(room_id)
                for member in room.players:
                    self._sessions.unbind(member.id)
                self.publish(
                    room_id,
                    PlayerLeftEvent(room_id=room_id, player_id=player_id, player_name=room.host.name),
                )
                destroyed = True
                logger.info("host left, room %s destroyed", room_id)
            else:
                guest = room.guest
                room.guest = None
                room.state = rules.remove_guest(room.state)
                room.touch()
                self._sessions.unbind(player_id)
                self.publish(
                    room_id,
                    PlayerLeftEvent(room_id=room_id, player_id=player_id, player_name=guest.name if guest else ""),
                )
                logger.info("guest %s left room %s", player_id, room_id)

        # Clean up the lock outside the async with block.
        if destroyed:
            self._room_locks.pop(room_id, None)
            self._bus.close_room(room_id)

    def subscribe(self, room_id: str, player_id: str) -> Subscription:
        """Open a live event stream for a member. No backlog is replayed."""
        self.authorize(room_id, player_id)
        return self._bus.subscribe(room_id)

    def set_connected(self, room_id: str, player_id: str, *, connected: bool) -> None:
        """Record a participant's connectivity. Unknown rooms or players are ignored."""
        room = self._store.get(room_id)
        if room is None:
            return
        if room.host_id == player_id:
            room.host = room.host.model_copy(update={"is_connected": connected})
        elif room.guest is not None and room.guest.id == player_id:
            room.guest = room.guest.model_copy(update={"is_connected": connected})

    # --- Helpers for the action service ---

    def authorize(self, room_id: str, player_id: str) -> Room:
        """Return the room if ``player_id`` belongs to it."""
        room = self._store.get(room_id)
        if room is None:
            raise RoomNotFoundError
        if not self._sessions.is_member(player_id, room_id) or not room.is_member(player_id):
            raise NotAuthorizedError
        return room

    @contextlib.asynccontextmanager
    async def locked(self, room_id: str, *, require_active: bool = True) -> AsyncIterator[Room]:
        """Hold the room's lock and yield the live room record."""
        lock = self._room_locks.get(room_id)
        if lock is None:
            raise RoomNotFoundError
        async with lock:
            room = self._store.get(room_id)
            if room is None:
                raise RoomNotFoundError
            if require_active and not room.active:
                raise RoomInactiveError
            yield room

    def publish(self, room_id: str, event: RoomEvent) -> None:
        self._bus.publish(room_id, event)

    def _unique_code(self) -> str:
        for _ in range(_MAX_CODE_ATTEMPTS):
            code = self._code_factory()
            if not self._store.code_in_use(code):
                return code
        raise ServerAtCapacityError("No free room code available")

    # --- Room reaper ---

    def start_room_reaper(self) -> None:
        """Start the periodic room reaper task. Idempotent."""
        if self._room_ttl_seconds <= 0:
            return
        if self._room_reaper_task is not None and not self._room_reaper_task.done():
            return
        self._room_reaper_task = asyncio.create_task(self._room_reaper_loop())

    async def stop_room_reaper(self) -> None:
        if self._room_reaper_task is not None:
            self._room_reaper_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._room_reaper_task
            self._room_reaper_task = None

    async def _room_reaper_loop(self) -> None:
        while True:
            await asyncio.sleep(_ROOM_REAPER_INTERVAL)
            try:
                await self._reap_expired_rooms()
            except Exception:
                logger.exception("room reaper encountered an error")

    async def _reap_expired_rooms(self) -> None:
        """Destroy rooms idle for longer than the TTL and end their streams."""
        cutoff = utcnow() - timedelta(seconds=self._room_ttl_seconds)
        expired = [room.room_id for room in self._store.rooms() if room.updated_at < cutoff]
        for room_id in expired:
            lock = self._room_locks.get(room_id)
            if lock is None:
                continue
            async with lock:
                room = self._store.get(room_id)
                if room is None or room.updated_at >= cutoff:
                    continue
                logger.info("room %s expired after %ds idle, closing", room_id, self._room_ttl_seconds)
                room.active = False
                self._store.remove(room_id)
                for member in room.players:
                    self._sessions.unbind(member.id)

            self._room_locks.pop(room_id, None)
            self._bus.close_room(room_id)
