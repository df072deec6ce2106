"""
Room action service: the state-mutating operations of a multiplayer room.

Each action authorizes the caller, validates the game phase, mutates the
room's authoritative GameState under the room lock and publishes the
resulting events before releasing it. A rejected action raises a
SparkRuleError subclass and leaves neither a state change nor an event.
"""

from __future__ import annotations

import random
from typing import TYPE_CHECKING

import structlog

from spark.logic import rules
from spark.logic.enums import IN_GAME_PHASES, GamePhase, PowerUpType, SparkType
from spark.logic.exceptions import InvalidPhaseError, NeedsSecondPlayerError, NotAuthorizedError, NotHostError
from spark.messaging.events import (
    AnswerCompletedEvent,
    DiceRolledEvent,
    GameEndedEvent,
    GameResetEvent,
    GameStartedEvent,
    PowerUpUsedEvent,
    QuestionSelectedEvent,
    SparksAwardedEvent,
    TurnChangedEvent,
)
from spark.session.models import Room, utcnow
from spark.session.types import RollResult

if TYPE_CHECKING:
    from collections.abc import Iterable

    from spark.logic.enums import Category
    from spark.logic.questions import QuestionCatalog
    from spark.logic.types import GameOptions, GameState
    from spark.messaging.events import RoomEvent
    from spark.session.bus import Subscription
    from spark.session.registry import RoomRegistry
    from spark.session.types import CreatedRoom, JoinedRoom

logger = structlog.get_logger()


class RoomActionService:
    def __init__(
        self,
        registry: RoomRegistry,
        catalog: QuestionCatalog,
        *,
        rng: random.Random | None = None,
    ) -> None:
        self._registry = registry
        self._catalog = catalog
        self._rng = rng or random.Random()  # noqa: S311

    @property
    def registry(self) -> RoomRegistry:
        return self._registry

    @property
    def catalog(self) -> QuestionCatalog:
        return self._catalog

    # --- Lifecycle (delegated to the registry) ---

    def create_room(self, host_name: str) -> CreatedRoom:
        return self._registry.create_room(host_name)

    async def join_room(self, room_code: str, guest_name: str) -> JoinedRoom:
        return await self._registry.join_room(room_code, guest_name)

    async def leave_room(self, room_id: str, player_id: str) -> None:
        await self._registry.leave_room(room_id, player_id)

    def get_room_state(self, room_id: str, player_id: str) -> GameState:
        return self._registry.get_room_state(room_id, player_id)

    def subscribe_to_room(self, room_id: str, player_id: str) -> Subscription:
        """Open an event stream for a member; raises NotAuthorizedError otherwise."""
        return self._registry.subscribe(room_id, player_id)

    # --- Game actions ---

    async def start_game(self, room_id: str, host_id: str, settings: GameOptions) -> GameState:
        async with self._registry.locked(room_id) as room:
            self._require_member(room, host_id)
            if host_id != room.host_id:
                raise NotHostError
            if room.guest is None:
                raise NeedsSecondPlayerError
            rules.require_phase(room.state, GamePhase.SETUP)

            room.state = rules.start_game(room.state, settings.apply_to(room.state.settings))
            self._publish(room, GameStartedEvent(room_id=room_id, settings=room.state.settings))
            logger.info(
                "game started",
                room_id=room_id,
                game_length=room.state.settings.game_length,
                total_questions=room.state.total_questions,
            )
            return room.state

    async def roll_dice(self, room_id: str, player_id: str, category: Category) -> RollResult:
        """Record the rolled category and resolve its question on the server.

        Publishes DICE_ROLLED then QUESTION_SELECTED. When no enabled question
        is left the game ends instead and GAME_ENDED follows DICE_ROLLED.
        """
        async with self._registry.locked(room_id) as room:
            self._require_member(room, player_id)
            rules.require_phase(room.state, GamePhase.PLAYING)

            state = rules.roll_category(room.state, category)
            question = self._catalog.select(category, state.settings, state.questions_answered, self._rng)
            events: list[RoomEvent] = [DiceRolledEvent(room_id=room_id, player_id=player_id, category=category)]
            if question is None:
                state = rules.end_game(state)
                events.append(self._game_ended(room_id, state))
                logger.info("question catalog exhausted, ending game", room_id=room_id)
            else:
                started_at = utcnow() if state.settings.enable_timer else None
                state = rules.select_question(state, question, timer_started_at=started_at)
                events.append(
                    QuestionSelectedEvent(room_id=room_id, question=question, timer_started_at=started_at),
                )

            room.state = state
            self._publish(room, *events)
            return RollResult(category=category, question=question)

    async def complete_answer(self, room_id: str, player_id: str) -> GameState:
        async with self._registry.locked(room_id) as room:
            self._require_member(room, player_id)
            rules.require_phase(room.state, GamePhase.PLAYING)
            if room.state.current_question is None:
                raise InvalidPhaseError("No question to complete")

            room.state = rules.complete_answer(room.state)
            self._publish(room, AnswerCompletedEvent(room_id=room_id, player_id=player_id))
            return room.state

    async def award_sparks(
        self,
        room_id: str,
        player_id: str,
        spark_types: Iterable[SparkType | str],
        awarded_to: str | None = None,
    ) -> int:
        """Add reaction points to the recipient's score and return the points.

        The recipient is resolved by identity (host or guest). Without a
        recipient the participant whose turn it is is credited.
        """
        spark_types = tuple(s.value if isinstance(s, SparkType) else str(s) for s in spark_types)
        async with self._registry.locked(room_id) as room:
            self._require_member(room, player_id)
            rules.require_in_game(room.state)
            if awarded_to is None:
                recipient = room.state.current_turn
            else:
                self._require_member(room, awarded_to)
                recipient = room.participant_of(awarded_to)

            points = rules.spark_total(spark_types)
            room.state = rules.add_sparks(room.state, recipient, points)
            self._publish(
                room,
                SparksAwardedEvent(
                    room_id=room_id,
                    awarded_by=player_id,
                    awarded_to=awarded_to,
                    spark_types=spark_types,
                    points=points,
                ),
            )
            return points

    async def use_power_up(self, room_id: str, player_id: str, power_up: PowerUpType) -> GameState:
        """Spend one charge of ``power_up`` for the caller.

        A capped-out power-up raises PowerUpExhaustedError with no state change.
        A skip also passes the turn and publishes TURN_CHANGED.
        """
        async with self._registry.locked(room_id) as room:
            self._require_member(room, player_id)
            rules.require_power_up_phase(room.state, power_up)
            participant = room.participant_of(player_id)
            rules.require_power_up(room.state, participant, power_up)

            state = rules.record_power_up(room.state, participant, power_up)
            events: list[RoomEvent] = [
                PowerUpUsedEvent(room_id=room_id, player_id=player_id, participant=participant, power_up=power_up),
            ]
            if power_up == PowerUpType.SKIP:
                state = rules.advance_turn(state)
                events.append(TurnChangedEvent(room_id=room_id, player_id=player_id))
                if state.game_phase == GamePhase.ENDED:
                    events.append(self._game_ended(room_id, state))

            room.state = state
            self._publish(room, *events)
            logger.info("power-up used", room_id=room_id, player_id=player_id, power_up=power_up)
            return room.state

    async def next_turn(self, room_id: str, player_id: str) -> GameState:
        """Pass the turn; ends the game once the target question count is reached."""
        async with self._registry.locked(room_id) as room:
            self._require_member(room, player_id)
            rules.require_phase(room.state, GamePhase.PLAYING, GamePhase.AWARDING_SPARKS)

            room.state = rules.advance_turn(room.state)
            events: list[RoomEvent] = [TurnChangedEvent(room_id=room_id, player_id=player_id)]
            if room.state.game_phase == GamePhase.ENDED:
                events.append(self._game_ended(room_id, room.state))
                logger.info("game finished", room_id=room_id, questions=room.state.question_count)
            self._publish(room, *events)
            return room.state

    async def end_game(self, room_id: str, player_id: str) -> GameState:
        async with self._registry.locked(room_id) as room:
            self._require_member(room, player_id)
            if room.state.game_phase not in IN_GAME_PHASES:
                raise InvalidPhaseError("No game in progress")

            room.state = rules.end_game(room.state)
            self._publish(room, self._game_ended(room_id, room.state))
            logger.info("game ended early", room_id=room_id, player_id=player_id)
            return room.state

    async def reset_game(self, room_id: str, host_id: str) -> GameState:
        """Restore a fresh game in setup, keeping both players in the room."""
        async with self._registry.locked(room_id) as room:
            self._require_member(room, host_id)
            if host_id != room.host_id:
                raise NotHostError

            room.state = rules.reset_game(room.state, phase=GamePhase.SETUP)
            self._publish(room, GameResetEvent(room_id=room_id))
            logger.info("game reset", room_id=room_id)
            return room.state

    # --- Internal helpers ---

    def _require_member(self, room: Room, player_id: str) -> None:
        if not room.is_member(player_id):
            logger.warning("rejected action from non-member", room_id=room.room_id, player_id=player_id)
            raise NotAuthorizedError

    def _publish(self, room: Room, *events: RoomEvent) -> None:
        room.touch()
        for event in events:
            self._registry.publish(room.room_id, event)

    @staticmethod
    def _game_ended(room_id: str, state: GameState) -> GameEndedEvent:
        return GameEndedEvent(
            room_id=room_id,
            player1_sparks=state.player1_sparks,
            player2_sparks=state.player2_sparks,
        )
