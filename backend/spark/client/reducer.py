"""
Pure fold of room events into a participant's MultiplayerGameState.

Every participant, including the one whose action produced an event, applies
the event here after it arrives from the bus. Actions never update local
state directly, so every view converges on the server copy. The reducer
never raises: events are facts already validated by the server.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from spark.logic import rules
from spark.logic.enums import ConnectionStatus, GamePhase
from spark.messaging.events import (
    AnswerCompletedEvent,
    DiceRolledEvent,
    GameEndedEvent,
    GameResetEvent,
    GameStartedEvent,
    PlayerJoinedEvent,
    PlayerLeftEvent,
    PowerUpUsedEvent,
    QuestionSelectedEvent,
    SparksAwardedEvent,
    TurnChangedEvent,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from spark.client.state import MultiplayerGameState
    from spark.logic.types import GameState, Participant
    from spark.messaging.events import RoomEvent


def reduce(state: MultiplayerGameState, event: RoomEvent) -> MultiplayerGameState:
    """Return the state after applying one event."""
    game = state.game

    if isinstance(event, PlayerJoinedEvent):
        slot = "host" if event.player.is_host else "guest"
        participant: Participant = 1 if event.player.is_host else 2
        return state.model_copy(
            update={
                slot: event.player,
                "waiting_for_player": False,
                "game": rules.set_player_name(game, participant, event.player.name),
            },
        )

    if isinstance(event, PlayerLeftEvent):
        if state.host is not None and event.player_id == state.host.id:
            return state.model_copy(
                update={
                    "connection_status": ConnectionStatus.DISCONNECTED,
                    "game": game.model_copy(update={"game_phase": GamePhase.ENDED}),
                },
            )
        return state.model_copy(
            update={
                "guest": None,
                "waiting_for_player": True,
                "game": rules.remove_guest(game),
            },
        )

    if isinstance(event, GameStartedEvent):
        return _with_game(state, rules.start_game(game, event.settings))

    if isinstance(event, DiceRolledEvent):
        return _with_game(state, rules.roll_category(game, event.category))

    if isinstance(event, QuestionSelectedEvent):
        return _with_game(
            state,
            rules.select_question(game, event.question, timer_started_at=event.timer_started_at),
        )

    if isinstance(event, AnswerCompletedEvent):
        return _with_game(state, rules.complete_answer(game))

    if isinstance(event, SparksAwardedEvent):
        recipient = _resolve_recipient(state, event.awarded_to)
        return _with_game(state, rules.add_sparks(game, recipient, rules.spark_total(event.spark_types)))

    if isinstance(event, PowerUpUsedEvent):
        return _with_game(state, rules.record_power_up(game, event.participant, event.power_up))

    if isinstance(event, TurnChangedEvent):
        return _with_game(state, rules.pass_turn(game))

    if isinstance(event, GameEndedEvent):
        return _with_game(
            state,
            rules.end_game(game, player1_sparks=event.player1_sparks, player2_sparks=event.player2_sparks),
        )

    if isinstance(event, GameResetEvent):
        return _with_game(state, rules.reset_game(game, phase=GamePhase.SETUP))

    return state


def reduce_all(state: MultiplayerGameState, events: Iterable[RoomEvent]) -> MultiplayerGameState:
    for event in events:
        state = reduce(state, event)
    return state


def _with_game(state: MultiplayerGameState, game: GameState) -> MultiplayerGameState:
    return state.model_copy(update={"game": game})


def _resolve_recipient(state: MultiplayerGameState, awarded_to: str | None) -> Participant:
    """Host id maps to participant 1, any other id to 2, no id to whoever's turn it is."""
    if awarded_to is None:
        return state.game.current_turn
    if state.host is not None and awarded_to == state.host.id:
        return 1
    return 2
