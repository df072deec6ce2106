"""
Game rules shared by the local engine, the room action service and the reducer.

Transition functions are pure: they take a frozen GameState and return a new
one. They do not validate; callers that accept player input run the guards
(``require_phase``, ``require_power_up``) first. The client reducer applies
the same transitions without guards because events describe facts that have
already been validated on the server.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from spark.logic.enums import IN_GAME_PHASES, GameLength, GamePhase, PowerUpType, SparkType
from spark.logic.exceptions import InvalidPhaseError, PowerUpExhaustedError
from spark.logic.types import DEFAULT_TOTAL_QUESTIONS, GameSettings, GameState, PowerUpUsage

if TYPE_CHECKING:
    from collections.abc import Iterable

    from spark.logic.enums import Category
    from spark.logic.types import Participant, Question

SPARK_POINTS: dict[SparkType, int] = {
    SparkType.MADE_ME_LAUGH: 2,
    SparkType.ADORABLE: 2,
    SparkType.DIDNT_KNOW: 3,
    SparkType.CONNECTION: 3,
    SparkType.HOT: 2,
    SparkType.BRAVE: 4,
    SparkType.SAME: 2,
}

POWER_UP_CAPS: dict[PowerUpType, int] = {
    PowerUpType.SKIP: 2,
    PowerUpType.RE_ROLL: 2,
    PowerUpType.BOTH_ANSWER: 1,
    PowerUpType.REVERSE: 1,
}

QUESTION_POWER_UPS = frozenset({PowerUpType.SKIP, PowerUpType.RE_ROLL})

QUESTION_LIMITS: dict[GameLength, int] = {
    GameLength.QUICK: 10,
    GameLength.STANDARD: 20,
    GameLength.MARATHON: 999,
}


def question_limit(game_length: GameLength) -> int:
    return QUESTION_LIMITS.get(game_length, DEFAULT_TOTAL_QUESTIONS)


def spark_total(spark_types: Iterable[SparkType | str]) -> int:
    """Sum the point value of each awarded reaction. Unknown kinds score zero."""
    total = 0
    for spark in spark_types:
        try:
            total += SPARK_POINTS[SparkType(spark)]
        except ValueError:
            continue
    return total


def other_participant(participant: Participant) -> Participant:
    return 2 if participant == 1 else 1


# --- Guards ---


def require_phase(state: GameState, *phases: GamePhase) -> None:
    if state.game_phase not in phases:
        allowed = ", ".join(p.value for p in phases)
        raise InvalidPhaseError(f"Action not allowed in phase '{state.game_phase.value}' (allowed: {allowed})")


def require_in_game(state: GameState) -> None:
    require_phase(state, *sorted(IN_GAME_PHASES, key=lambda p: p.value))


def remaining_power_ups(state: GameState, participant: Participant, kind: PowerUpType) -> int:
    return max(0, POWER_UP_CAPS[kind] - state.usage_for(participant).used(kind))


def require_power_up(state: GameState, participant: Participant, kind: PowerUpType) -> None:
    if remaining_power_ups(state, participant, kind) <= 0:
        raise PowerUpExhaustedError(f"No uses of '{kind.value}' left for player {participant}")


def require_power_up_phase(state: GameState, kind: PowerUpType) -> None:
    """Power-ups are played during a turn; skip and re-roll also need a question on the board."""
    require_phase(state, GamePhase.PLAYING)
    if kind in QUESTION_POWER_UPS and state.current_question is None:
        raise InvalidPhaseError(f"'{kind.value}' needs a question on the board")


# --- Transitions ---


def start_game(state: GameState, settings: GameSettings) -> GameState:
    """Apply settings and enter the playing phase with a fresh scoreboard."""
    return state.model_copy(
        update={
            "settings": settings,
            "game_phase": GamePhase.PLAYING,
            "current_turn": 1,
            "player1_sparks": 0,
            "player2_sparks": 0,
            "questions_answered": (),
            "current_question": None,
            "current_category": None,
            "last_category": None,
            "power_ups_used": (PowerUpUsage(), PowerUpUsage()),
            "question_count": 0,
            "total_questions": question_limit(settings.game_length),
            "timer_started_at": None,
        },
    )


def roll_category(state: GameState, category: Category) -> GameState:
    return state.model_copy(update={"current_category": category, "last_category": category})


def select_question(state: GameState, question: Question, *, timer_started_at: datetime | None = None) -> GameState:
    """Make ``question`` current and record it as asked.

    The current category follows the question so that a fallback pick from
    another category keeps the two consistent.
    """
    answered = state.questions_answered
    if question.id not in answered:
        answered = (*answered, question.id)
    return state.model_copy(
        update={
            "current_question": question,
            "current_category": question.category,
            "questions_answered": answered,
            "timer_started_at": timer_started_at,
        },
    )


def complete_answer(state: GameState) -> GameState:
    return state.model_copy(update={"game_phase": GamePhase.AWARDING_SPARKS})


def add_sparks(state: GameState, participant: Participant, points: int) -> GameState:
    if participant == 1:
        return state.model_copy(update={"player1_sparks": state.player1_sparks + points})
    return state.model_copy(update={"player2_sparks": state.player2_sparks + points})


def pass_turn(state: GameState) -> GameState:
    """Flip the turn, count the finished question and clear the board."""
    return state.model_copy(
        update={
            "current_turn": other_participant(state.current_turn),
            "question_count": state.question_count + 1,
            "current_question": None,
            "current_category": None,
            "game_phase": GamePhase.PLAYING,
            "timer_started_at": None,
        },
    )


def advance_turn(state: GameState) -> GameState:
    """Pass the turn and end the game once the target count is reached."""
    new_state = pass_turn(state)
    if new_state.question_count >= new_state.total_questions:
        return new_state.model_copy(update={"game_phase": GamePhase.ENDED})
    return new_state


def is_finished(state: GameState) -> bool:
    return state.question_count >= state.total_questions


def record_power_up(state: GameState, participant: Participant, kind: PowerUpType) -> GameState:
    """Count one use of ``kind`` and apply its immediate board effect.

    ``skip`` only counts here; its turn transition is applied separately so
    that it can be published as its own turn change.
    """
    usage = list(state.power_ups_used)
    usage[participant - 1] = usage[participant - 1].incremented(kind)
    new_state = state.model_copy(update={"power_ups_used": (usage[0], usage[1])})

    if kind == PowerUpType.RE_ROLL:
        return new_state.model_copy(
            update={"current_category": None, "current_question": None, "timer_started_at": None},
        )
    if kind == PowerUpType.REVERSE:
        return new_state.model_copy(update={"current_turn": other_participant(state.current_turn)})
    return new_state


def end_game(state: GameState, *, player1_sparks: int | None = None, player2_sparks: int | None = None) -> GameState:
    update: dict[str, object] = {"game_phase": GamePhase.ENDED}
    if player1_sparks is not None:
        update["player1_sparks"] = player1_sparks
    if player2_sparks is not None:
        update["player2_sparks"] = player2_sparks
    return state.model_copy(update=update)


def reset_game(state: GameState, *, phase: GamePhase) -> GameState:
    """Return a default state that keeps only the participants' names."""
    settings = GameSettings(
        player1_name=state.settings.player1_name,
        player2_name=state.settings.player2_name,
    )
    return GameState(settings=settings, game_phase=phase)


def set_player_name(state: GameState, participant: Participant, name: str) -> GameState:
    field_name = "player1_name" if participant == 1 else "player2_name"
    settings = state.settings.model_copy(update={field_name: name})
    return state.model_copy(update={"settings": settings})


def remove_guest(state: GameState) -> GameState:
    """Clear the guest's name and send the room back to setup."""
    return set_player_name(state, 2, "").model_copy(update={"game_phase": GamePhase.SETUP})


def toggle_bookmark(state: GameState, question_id: str) -> GameState:
    if question_id in state.bookmarked_questions:
        bookmarks = tuple(q for q in state.bookmarked_questions if q != question_id)
    else:
        bookmarks = (*state.bookmarked_questions, question_id)
    return state.model_copy(update={"bookmarked_questions": bookmarks})
