"""
Pydantic models for the shared game state.

GameState is used unchanged by the local single-device engine, the
authoritative room copy on the server and every client's folded view. All
models are frozen; transitions in ``spark.logic.rules`` return new copies.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from spark.logic.enums import (
    ALL_CATEGORIES,
    Category,
    DateType,
    GameLength,
    GamePhase,
    PowerUpType,
    QuestionType,
)

Participant = Literal[1, 2]
TimerSeconds = Literal[30, 60, 90]

DEFAULT_TOTAL_QUESTIONS = 20


class Question(BaseModel):
    """Static catalog entry. Never mutated after load."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    category: Category
    difficulty: Literal[1, 2, 3]
    points: int = Field(ge=0)
    text: str = Field(min_length=1)
    follow_up: str | None = None
    tags: tuple[str, ...] = ()
    type: QuestionType = QuestionType.STANDARD


class GameSettings(BaseModel):
    """Per-session configuration chosen on the setup screen."""

    model_config = ConfigDict(frozen=True)

    player1_name: str = ""
    player2_name: str = ""
    date_type: DateType = DateType.FIRST
    game_length: GameLength = GameLength.STANDARD
    enable_timer: bool = False
    timer_seconds: TimerSeconds = 60
    enable_music: bool = False
    show_sparks: bool = True
    selected_categories: tuple[Category, ...] = ALL_CATEGORIES

    def is_enabled(self, category: Category) -> bool:
        return category in self.selected_categories


class PowerUpUsage(BaseModel):
    """How many times one participant has used each power-up kind."""

    model_config = ConfigDict(frozen=True)

    reverse: int = 0
    both_answer: int = 0
    skip: int = 0
    re_roll: int = 0

    def used(self, kind: PowerUpType) -> int:
        return getattr(self, _USAGE_FIELDS[kind])

    def incremented(self, kind: PowerUpType) -> PowerUpUsage:
        field_name = _USAGE_FIELDS[kind]
        return self.model_copy(update={field_name: getattr(self, field_name) + 1})


_USAGE_FIELDS: dict[PowerUpType, str] = {
    PowerUpType.REVERSE: "reverse",
    PowerUpType.BOTH_ANSWER: "both_answer",
    PowerUpType.SKIP: "skip",
    PowerUpType.RE_ROLL: "re_roll",
}


class GameState(BaseModel):
    """Shared game state for both play modes."""

    model_config = ConfigDict(frozen=True)

    settings: GameSettings = Field(default_factory=GameSettings)
    current_turn: Participant = 1
    player1_sparks: int = 0
    player2_sparks: int = 0
    questions_answered: tuple[str, ...] = ()
    current_question: Question | None = None
    current_category: Category | None = None
    last_category: Category | None = None
    power_ups_used: tuple[PowerUpUsage, PowerUpUsage] = (PowerUpUsage(), PowerUpUsage())
    bookmarked_questions: tuple[str, ...] = ()
    game_phase: GamePhase = GamePhase.LANDING
    question_count: int = 0
    total_questions: int = DEFAULT_TOTAL_QUESTIONS
    timer_started_at: datetime | None = None

    def sparks_for(self, participant: Participant) -> int:
        return self.player1_sparks if participant == 1 else self.player2_sparks

    def usage_for(self, participant: Participant) -> PowerUpUsage:
        return self.power_ups_used[participant - 1]


class Player(BaseModel):
    """A room participant as seen by every client."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    is_host: bool
    is_connected: bool = True
    joined_at: datetime


class GameOptions(BaseModel):
    """Settings the host picks when starting a room game. Names stay with the room."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    date_type: DateType = DateType.FIRST
    game_length: GameLength = GameLength.STANDARD
    enable_timer: bool = False
    timer_seconds: TimerSeconds = 60
    enable_music: bool = False
    show_sparks: bool = True
    selected_categories: tuple[Category, ...] = Field(default=ALL_CATEGORIES, min_length=1)

    def apply_to(self, settings: GameSettings) -> GameSettings:
        return settings.model_copy(update=self.model_dump())
