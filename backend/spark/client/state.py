"""Client-side view of a multiplayer room."""

from pydantic import BaseModel, ConfigDict, Field

from spark.logic.enums import ConnectionStatus
from spark.logic.types import GameState, Player


class MultiplayerGameState(BaseModel):
    """Everything one participant's UI renders for an online game.

    ``game`` has the same shape the single-device engine exposes, so the
    presentation layer renders both modes from the same fields.
    """

    model_config = ConfigDict(frozen=True)

    room_id: str | None = None
    room_code: str | None = None
    player_id: str | None = None
    host: Player | None = None
    guest: Player | None = None
    connection_status: ConnectionStatus = ConnectionStatus.DISCONNECTED
    waiting_for_player: bool = True
    game: GameState = Field(default_factory=GameState)

    @property
    def is_host(self) -> bool:
        return self.host is not None and self.player_id == self.host.id
