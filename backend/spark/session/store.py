"""Room storage behind the registry.

The registry only talks to ``RoomStore``; the in-memory implementation is the
only one shipped, and a shared store can replace it without touching callers.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from spark.session.codes import normalize_room_code

if TYPE_CHECKING:
    from spark.session.models import Room


class RoomStore(ABC):
    @abstractmethod
    def add(self, room: Room) -> None: ...

    @abstractmethod
    def get(self, room_id: str) -> Room | None: ...

    @abstractmethod
    def get_by_code(self, code: str) -> Room | None:
        """Look up a room by join code, case-insensitively."""
        ...

    @abstractmethod
    def remove(self, room_id: str) -> Room | None: ...

    @abstractmethod
    def rooms(self) -> list[Room]: ...

    def code_in_use(self, code: str) -> bool:
        return self.get_by_code(code) is not None

    def __len__(self) -> int:
        return len(self.rooms())


class InMemoryRoomStore(RoomStore):
    """Process-local room map with a join-code index."""

    def __init__(self) -> None:
        self._rooms: dict[str, Room] = {}  # room_id -> Room
        self._codes: dict[str, str] = {}  # canonical code -> room_id

    def add(self, room: Room) -> None:
        code = normalize_room_code(room.code)
        if room.room_id in self._rooms or code in self._codes:
            raise ValueError(f"Room {room.room_id} or code {code} already stored")
        self._rooms[room.room_id] = room
        self._codes[code] = room.room_id

    def get(self, room_id: str) -> Room | None:
        return self._rooms.get(room_id)

    def get_by_code(self, code: str) -> Room | None:
        room_id = self._codes.get(normalize_room_code(code))
        if room_id is None:
            return None
        return self._rooms.get(room_id)

    def remove(self, room_id: str) -> Room | None:
        room = self._rooms.pop(room_id, None)
        if room is not None:
            self._codes.pop(normalize_room_code(room.code), None)
        return room

    def rooms(self) -> list[Room]:
        return list(self._rooms.values())

    def __len__(self) -> int:
        return len(self._rooms)
