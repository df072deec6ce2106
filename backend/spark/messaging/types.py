from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter, field_validator

from spark.logic.enums import Category, PowerUpType, SparkType
from spark.logic.types import GameOptions

# ASCII control character boundaries for input validation
_SPACE_ORD = 0x20
_DEL_ORD = 0x7F

_ID_FIELD = Field(min_length=1, max_length=64, pattern=r"^[a-zA-Z0-9_-]+$")
_ROOM_CODE_FIELD = Field(min_length=6, max_length=6, pattern=r"^[a-zA-Z0-9]+$")
_REQUEST_ID_FIELD = Field(default=None, max_length=64)


def validate_player_name(value: str) -> str:
    """Strip a display name and reject blank names or control characters."""
    value = value.strip()
    if not value:
        raise ValueError("name must not be blank")
    if any(ord(c) < _SPACE_ORD or ord(c) == _DEL_ORD for c in value):
        raise ValueError("name must not contain control characters")
    return value


class ClientMessageType(StrEnum):
    CREATE_ROOM = "create_room"
    JOIN_ROOM = "join_room"
    LEAVE_ROOM = "leave_room"
    GET_ROOM_STATE = "get_room_state"
    SUBSCRIBE = "subscribe"
    UNSUBSCRIBE = "unsubscribe"
    START_GAME = "start_game"
    ROLL_DICE = "roll_dice"
    COMPLETE_ANSWER = "complete_answer"
    AWARD_SPARKS = "award_sparks"
    USE_POWER_UP = "use_power_up"
    NEXT_TURN = "next_turn"
    END_GAME = "end_game"
    RESET_GAME = "reset_game"
    PING = "ping"


class SessionMessageType(StrEnum):
    ACTION_RESULT = "action_result"
    ROOM_EVENT = "room_event"
    ERROR = "session_error"
    PONG = "pong"


class SessionErrorCode(StrEnum):
    ROOM_NOT_FOUND = "room_not_found"
    ROOM_FULL = "room_full"
    ROOM_INACTIVE = "room_inactive"
    NOT_HOST = "not_host"
    NEEDS_SECOND_PLAYER = "needs_second_player"
    NOT_AUTHORIZED = "not_authorized"
    INVALID_PHASE = "invalid_phase"
    POWER_UP_EXHAUSTED = "power_up_exhausted"
    SERVER_AT_CAPACITY = "server_at_capacity"
    INVALID_MESSAGE = "invalid_message"
    ACTION_FAILED = "action_failed"
    RATE_LIMITED = "rate_limited"


class _ClientMessage(BaseModel):
    request_id: str | None = _REQUEST_ID_FIELD


class _RoomMessage(_ClientMessage):
    """A request acting on one room on behalf of one participant."""

    room_id: str = _ID_FIELD
    player_id: str = _ID_FIELD


class CreateRoomMessage(_ClientMessage):
    type: Literal[ClientMessageType.CREATE_ROOM] = ClientMessageType.CREATE_ROOM
    host_name: str = Field(min_length=1, max_length=50)

    @field_validator("host_name")
    @classmethod
    def _validate_host_name(cls, v: str) -> str:
        return validate_player_name(v)


class JoinRoomMessage(_ClientMessage):
    type: Literal[ClientMessageType.JOIN_ROOM] = ClientMessageType.JOIN_ROOM
    room_code: str = _ROOM_CODE_FIELD
    player_name: str = Field(min_length=1, max_length=50)

    @field_validator("player_name")
    @classmethod
    def _validate_player_name(cls, v: str) -> str:
        return validate_player_name(v)


class LeaveRoomMessage(_RoomMessage):
    type: Literal[ClientMessageType.LEAVE_ROOM] = ClientMessageType.LEAVE_ROOM


class GetRoomStateMessage(_RoomMessage):
    type: Literal[ClientMessageType.GET_ROOM_STATE] = ClientMessageType.GET_ROOM_STATE


class SubscribeMessage(_RoomMessage):
    type: Literal[ClientMessageType.SUBSCRIBE] = ClientMessageType.SUBSCRIBE


class UnsubscribeMessage(_ClientMessage):
    type: Literal[ClientMessageType.UNSUBSCRIBE] = ClientMessageType.UNSUBSCRIBE
    room_id: str = _ID_FIELD


class StartGameMessage(_RoomMessage):
    type: Literal[ClientMessageType.START_GAME] = ClientMessageType.START_GAME
    settings: GameOptions = Field(default_factory=GameOptions)


class RollDiceMessage(_RoomMessage):
    type: Literal[ClientMessageType.ROLL_DICE] = ClientMessageType.ROLL_DICE
    category: Category


class CompleteAnswerMessage(_RoomMessage):
    type: Literal[ClientMessageType.COMPLETE_ANSWER] = ClientMessageType.COMPLETE_ANSWER


class AwardSparksMessage(_RoomMessage):
    type: Literal[ClientMessageType.AWARD_SPARKS] = ClientMessageType.AWARD_SPARKS
    spark_types: list[SparkType] = Field(min_length=1, max_length=len(SparkType))
    awarded_to: str | None = Field(default=None, min_length=1, max_length=64)


class UsePowerUpMessage(_RoomMessage):
    type: Literal[ClientMessageType.USE_POWER_UP] = ClientMessageType.USE_POWER_UP
    power_up: PowerUpType


class NextTurnMessage(_RoomMessage):
    type: Literal[ClientMessageType.NEXT_TURN] = ClientMessageType.NEXT_TURN


class EndGameMessage(_RoomMessage):
    type: Literal[ClientMessageType.END_GAME] = ClientMessageType.END_GAME


class ResetGameMessage(_RoomMessage):
    type: Literal[ClientMessageType.RESET_GAME] = ClientMessageType.RESET_GAME


class PingMessage(_ClientMessage):
    type: Literal[ClientMessageType.PING] = ClientMessageType.PING


ClientMessage = (
    CreateRoomMessage
    | JoinRoomMessage
    | LeaveRoomMessage
    | GetRoomStateMessage
    | SubscribeMessage
    | UnsubscribeMessage
    | StartGameMessage
    | RollDiceMessage
    | CompleteAnswerMessage
    | AwardSparksMessage
    | UsePowerUpMessage
    | NextTurnMessage
    | EndGameMessage
    | ResetGameMessage
    | PingMessage
)


class ActionResultMessage(BaseModel):
    type: Literal[SessionMessageType.ACTION_RESULT] = SessionMessageType.ACTION_RESULT
    request_id: str | None = None
    action: ClientMessageType
    data: dict[str, Any] = Field(default_factory=dict)


class RoomEventMessage(BaseModel):
    """A bus event forwarded to a subscribed connection."""

    type: Literal[SessionMessageType.ROOM_EVENT] = SessionMessageType.ROOM_EVENT
    room_id: str
    event: dict[str, Any]


class ErrorMessage(BaseModel):
    type: Literal[SessionMessageType.ERROR] = SessionMessageType.ERROR
    code: SessionErrorCode
    message: str
    request_id: str | None = None


class PongMessage(BaseModel):
    type: Literal[SessionMessageType.PONG] = SessionMessageType.PONG
    request_id: str | None = None


_client_message_adapter = TypeAdapter(Annotated[ClientMessage, Field(discriminator="type")])


def parse_client_message(data: dict[str, Any]) -> ClientMessage:
    """Parse a raw dict into a typed ClientMessage."""
    return _client_message_adapter.validate_python(data)
