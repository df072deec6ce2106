from dataclasses import dataclass, field
from datetime import UTC, datetime

from spark.logic.enums import GamePhase
from spark.logic.types import GameState, Participant, Player


def utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class Room:
    """Authoritative record of one two-player session.

    Lifecycle:
    - Created with a host and an empty guest slot, phase ``setup``
    - The guest slot is filled by exactly one join
    - Guest leaving clears the slot and sends the game back to setup
    - Host leaving deactivates the room and removes it from the store
    """

    room_id: str
    code: str
    host: Player
    state: GameState
    guest: Player | None = None
    active: bool = True
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def host_id(self) -> str:
        return self.host.id

    @property
    def guest_id(self) -> str | None:
        return self.guest.id if self.guest is not None else None

    @property
    def is_full(self) -> bool:
        return self.guest is not None

    @property
    def players(self) -> list[Player]:
        return [self.host] if self.guest is None else [self.host, self.guest]

    @property
    def player_ids(self) -> set[str]:
        return {p.id for p in self.players}

    @property
    def in_game(self) -> bool:
        return self.state.game_phase not in (GamePhase.LANDING, GamePhase.SETUP)

    def is_member(self, player_id: str) -> bool:
        return player_id in self.player_ids

    def participant_of(self, player_id: str) -> Participant:
        """Map a member id to its turn slot: host plays as 1, guest as 2."""
        if player_id == self.host.id:
            return 1
        if self.guest is not None and player_id == self.guest.id:
            return 2
        raise KeyError(player_id)

    def touch(self) -> None:
        self.updated_at = utcnow()
