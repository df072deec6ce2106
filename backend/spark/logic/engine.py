"""
Single-device game engine for pass-and-play mode.

Owns its GameState directly and applies the shared transitions from
``spark.logic.rules``. No bus, no rooms: every call mutates local state and
the caller re-renders from ``engine.state``.
"""

from __future__ import annotations

import random
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog
from pydantic import BaseModel, ConfigDict

from spark.logic import rules
from spark.logic.enums import GamePhase, PowerUpType
from spark.logic.exceptions import InvalidPhaseError
from spark.logic.types import GameState, Participant

if TYPE_CHECKING:
    from collections.abc import Iterable

    from spark.logic.enums import Category, SparkType
    from spark.logic.questions import QuestionCatalog
    from spark.logic.types import GameSettings, Question

logger = structlog.get_logger()


class GameStats(BaseModel):
    """Scoreboard summary shown on the end screen."""

    model_config = ConfigDict(frozen=True)

    player1_name: str
    player2_name: str
    player1_sparks: int
    player2_sparks: int
    questions_completed: int
    total_questions: int
    bookmarked: int
    leader: Participant | None


class LocalGameEngine:
    """Drive turn order, question selection and scoring for one device."""

    def __init__(
        self,
        catalog: QuestionCatalog,
        *,
        rng: random.Random | None = None,
        clock: type[datetime] = datetime,
    ) -> None:
        self._catalog = catalog
        self._rng = rng or random.Random()  # noqa: S311
        self._clock = clock
        self._state = GameState()

    @property
    def state(self) -> GameState:
        return self._state

    def initialize_game(self, settings: GameSettings) -> GameState:
        """Apply setup-screen settings and start play with player 1."""
        rules.require_phase(self._state, GamePhase.LANDING, GamePhase.SETUP)
        self._state = rules.start_game(self._state, settings)
        logger.info(
            "local game started",
            game_length=settings.game_length,
            total_questions=self._state.total_questions,
        )
        return self._state

    def roll_dice(self) -> Category:
        """Roll a selected category, avoiding an immediate repeat when possible."""
        rules.require_phase(self._state, GamePhase.PLAYING)
        selected = self._state.settings.selected_categories
        choices = [c for c in selected if c != self._state.last_category] or list(selected)
        category = self._rng.choice(choices)
        self._state = rules.roll_category(self._state, category)
        return category

    def select_question(self, category: Category) -> Question | None:
        """Draw a question for ``category``.

        When no enabled question is left the game ends and None is returned.
        """
        rules.require_phase(self._state, GamePhase.PLAYING)
        question = self._catalog.select(
            category,
            self._state.settings,
            self._state.questions_answered,
            self._rng,
        )
        if question is None:
            logger.info("question catalog exhausted, ending game")
            self._state = rules.end_game(self._state)
            return None
        started_at = self._clock.now(tz=UTC) if self._state.settings.enable_timer else None
        self._state = rules.select_question(self._state, question, timer_started_at=started_at)
        return question

    def complete_answer(self) -> GameState:
        rules.require_phase(self._state, GamePhase.PLAYING)
        if self._state.current_question is None:
            raise InvalidPhaseError("No question to complete")
        self._state = rules.complete_answer(self._state)
        return self._state

    def award_base_points(self) -> int:
        """Credit the current question's base value to the answering player."""
        question = self._state.current_question
        if question is None:
            return 0
        self._state = rules.add_sparks(self._state, self._state.current_turn, question.points)
        return question.points

    def award_sparks(self, spark_types: Iterable[SparkType | str]) -> int:
        """Credit reaction points to the participant whose turn it is."""
        rules.require_in_game(self._state)
        points = rules.spark_total(spark_types)
        self._state = rules.add_sparks(self._state, self._state.current_turn, points)
        return points

    def next_turn(self) -> GameState:
        rules.require_phase(self._state, GamePhase.PLAYING, GamePhase.AWARDING_SPARKS)
        self._state = rules.advance_turn(self._state)
        if self._state.game_phase == GamePhase.ENDED:
            logger.info("local game finished", questions=self._state.question_count)
        return self._state

    def use_power_up(self, kind: PowerUpType) -> GameState:
        """Spend one charge of ``kind`` for the current player.

        Raises PowerUpExhaustedError without touching state once the cap is hit.
        """
        rules.require_power_up_phase(self._state, kind)
        participant = self._state.current_turn
        rules.require_power_up(self._state, participant, kind)
        self._state = rules.record_power_up(self._state, participant, kind)
        if kind == PowerUpType.SKIP:
            self._state = rules.advance_turn(self._state)
        return self._state

    def remaining_power_ups(self, kind: PowerUpType, participant: Participant | None = None) -> int:
        target = participant if participant is not None else self._state.current_turn
        return rules.remaining_power_ups(self._state, target, kind)

    def toggle_bookmark(self, question_id: str) -> bool:
        """Flip the bookmark on a question. Returns True if it is now bookmarked."""
        self._state = rules.toggle_bookmark(self._state, question_id)
        return question_id in self._state.bookmarked_questions

    def end_game(self) -> GameState:
        self._state = rules.end_game(self._state)
        return self._state

    def reset_game(self) -> GameState:
        self._state = rules.reset_game(self._state, phase=GamePhase.LANDING)
        return self._state

    def set_phase(self, phase: GamePhase) -> GameState:
        self._state = self._state.model_copy(update={"game_phase": phase})
        return self._state

    def stats(self) -> GameStats:
        state = self._state
        if state.player1_sparks > state.player2_sparks:
            leader: Participant | None = 1
        elif state.player2_sparks > state.player1_sparks:
            leader = 2
        else:
            leader = None
        return GameStats(
            player1_name=state.settings.player1_name,
            player2_name=state.settings.player2_name,
            player1_sparks=state.player1_sparks,
            player2_sparks=state.player2_sparks,
            questions_completed=state.question_count,
            total_questions=state.total_questions,
            bookmarked=len(state.bookmarked_questions),
            leader=leader,
        )
