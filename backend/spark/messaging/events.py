"""Room event models.

Every state change in a multiplayer room is published on the room's bus as one
of these immutable events. Events carry no sequence number: clients rely on
bus delivery order and fold events through ``spark.client.reducer.reduce``.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from spark.logic.enums import Category, PowerUpType
from spark.logic.types import GameSettings, Participant, Player, Question


class EventType(StrEnum):
    """Types of room events."""

    PLAYER_JOINED = "PLAYER_JOINED"
    PLAYER_LEFT = "PLAYER_LEFT"
    GAME_STARTED = "GAME_STARTED"
    DICE_ROLLED = "DICE_ROLLED"
    QUESTION_SELECTED = "QUESTION_SELECTED"
    ANSWER_COMPLETED = "ANSWER_COMPLETED"
    SPARKS_AWARDED = "SPARKS_AWARDED"
    POWER_UP_USED = "POWER_UP_USED"
    TURN_CHANGED = "TURN_CHANGED"
    GAME_ENDED = "GAME_ENDED"
    GAME_RESET = "GAME_RESET"


class GameEvent(BaseModel):
    """Base class for all room events."""

    model_config = ConfigDict(frozen=True)

    type: EventType
    room_id: str


class PlayerJoinedEvent(GameEvent):
    type: Literal[EventType.PLAYER_JOINED] = EventType.PLAYER_JOINED
    player: Player


class PlayerLeftEvent(GameEvent):
    type: Literal[EventType.PLAYER_LEFT] = EventType.PLAYER_LEFT
    player_id: str
    player_name: str


class GameStartedEvent(GameEvent):
    type: Literal[EventType.GAME_STARTED] = EventType.GAME_STARTED
    settings: GameSettings


class DiceRolledEvent(GameEvent):
    type: Literal[EventType.DICE_ROLLED] = EventType.DICE_ROLLED
    player_id: str
    category: Category


class QuestionSelectedEvent(GameEvent):
    """The server-resolved question for the last roll."""

    type: Literal[EventType.QUESTION_SELECTED] = EventType.QUESTION_SELECTED
    question: Question
    timer_started_at: datetime | None = None


class AnswerCompletedEvent(GameEvent):
    type: Literal[EventType.ANSWER_COMPLETED] = EventType.ANSWER_COMPLETED
    player_id: str


class SparksAwardedEvent(GameEvent):
    """Reactions awarded after an answer.

    ``awarded_to`` names the recipient. When it is None the participant whose
    turn it is receives the points.
    """

    type: Literal[EventType.SPARKS_AWARDED] = EventType.SPARKS_AWARDED
    awarded_by: str
    awarded_to: str | None = None
    spark_types: tuple[str, ...]
    points: int = 0


class PowerUpUsedEvent(GameEvent):
    type: Literal[EventType.POWER_UP_USED] = EventType.POWER_UP_USED
    player_id: str
    participant: Participant
    power_up: PowerUpType


class TurnChangedEvent(GameEvent):
    type: Literal[EventType.TURN_CHANGED] = EventType.TURN_CHANGED
    player_id: str


class GameEndedEvent(GameEvent):
    """Terminal event carrying the final tallies."""

    type: Literal[EventType.GAME_ENDED] = EventType.GAME_ENDED
    player1_sparks: int
    player2_sparks: int


class GameResetEvent(GameEvent):
    type: Literal[EventType.GAME_RESET] = EventType.GAME_RESET


RoomEvent = Annotated[
    PlayerJoinedEvent
    | PlayerLeftEvent
    | GameStartedEvent
    | DiceRolledEvent
    | QuestionSelectedEvent
    | AnswerCompletedEvent
    | SparksAwardedEvent
    | PowerUpUsedEvent
    | TurnChangedEvent
    | GameEndedEvent
    | GameResetEvent,
    Field(discriminator="type"),
]

_room_event_adapter: TypeAdapter[RoomEvent] = TypeAdapter(RoomEvent)


def parse_room_event(data: dict[str, Any]) -> RoomEvent:
    """Parse a dict (e.g. a decoded ``room_event`` payload) into a typed event."""
    return _room_event_adapter.validate_python(data)
