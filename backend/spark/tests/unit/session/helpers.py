"""Helpers for room action service tests."""

from dataclasses import dataclass

from spark.logic.types import GameOptions
from spark.session.bus import Subscription
from spark.session.service import RoomActionService


@dataclass
class SeatedRoom:
    room_id: str
    room_code: str
    host_id: str
    guest_id: str
    host_events: Subscription
    guest_events: Subscription


async def create_seated_room(
    service: RoomActionService,
    host_name: str = "Alex",
    guest_name: str = "Sam",
) -> SeatedRoom:
    """Create a room, join a guest and subscribe both participants."""
    created = service.create_room(host_name)
    joined = await service.join_room(created.room_code, guest_name)
    return SeatedRoom(
        room_id=created.room_id,
        room_code=created.room_code,
        host_id=created.player_id,
        guest_id=joined.player_id,
        host_events=service.subscribe_to_room(created.room_id, created.player_id),
        guest_events=service.subscribe_to_room(created.room_id, joined.player_id),
    )


async def create_started_room(service: RoomActionService, options: GameOptions | None = None) -> SeatedRoom:
    room = await create_seated_room(service)
    await service.start_game(room.room_id, room.host_id, options or GameOptions())
    room.host_events.drain()
    room.guest_events.drain()
    return room
