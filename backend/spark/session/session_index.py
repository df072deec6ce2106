class SessionIndex:
    """In-memory map from participant id to the room that participant belongs to.

    Used to authorize actions and subscriptions. Entries are added on create
    and join and removed on leave or room teardown.
    """

    def __init__(self) -> None:
        self._rooms_by_player: dict[str, str] = {}  # player_id -> room_id

    def bind(self, player_id: str, room_id: str) -> None:
        self._rooms_by_player[player_id] = room_id

    def unbind(self, player_id: str) -> None:
        self._rooms_by_player.pop(player_id, None)

    def room_of(self, player_id: str) -> str | None:
        return self._rooms_by_player.get(player_id)

    def is_member(self, player_id: str, room_id: str) -> bool:
        return self._rooms_by_player.get(player_id) == room_id

    def __len__(self) -> int:
        return len(self._rooms_by_player)
