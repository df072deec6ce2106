"""
Pydantic models returned by the room registry and action service.
"""

from pydantic import BaseModel

from spark.logic.enums import Category
from spark.logic.types import GameState, Player, Question


class CreatedRoom(BaseModel):
    room_id: str
    room_code: str
    player_id: str


class RoomSnapshot(BaseModel):
    """Full room view for cold start and resync."""

    room_id: str
    room_code: str
    host: Player
    guest: Player | None
    game_state: GameState


class JoinedRoom(BaseModel):
    room_id: str
    room_code: str
    player_id: str
    game_state: GameState
    host: Player
    guest: Player


class RollResult(BaseModel):
    """Outcome of a roll. ``question`` is None when the catalog ran out and the game ended."""

    category: Category
    question: Question | None
