"""In-process room participant.

Drives the room action service the way a remote client drives the WebSocket
API: actions are fire-and-confirm, and the local view changes only when the
resulting events are folded from the subscription.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from spark.client.reducer import reduce, reduce_all
from spark.client.state import MultiplayerGameState
from spark.logic import rules
from spark.logic.enums import ConnectionStatus
from spark.logic.types import GameOptions

if TYPE_CHECKING:
    from collections.abc import Iterable

    from spark.logic.enums import Category, PowerUpType, SparkType
    from spark.messaging.events import RoomEvent
    from spark.session.bus import Subscription
    from spark.session.service import RoomActionService
    from spark.session.types import RollResult

logger = structlog.get_logger()


class RoomClient:
    def __init__(self, service: RoomActionService) -> None:
        self._service = service
        self._subscription: Subscription | None = None
        self.state = MultiplayerGameState()

    @property
    def room_id(self) -> str:
        if self.state.room_id is None:
            raise RuntimeError("client is not in a room")
        return self.state.room_id

    @property
    def player_id(self) -> str:
        if self.state.player_id is None:
            raise RuntimeError("client is not in a room")
        return self.state.player_id

    # --- Joining and leaving ---

    def create_room(self, host_name: str) -> MultiplayerGameState:
        created = self._service.create_room(host_name)
        snapshot = self._service.registry.snapshot(created.room_id, created.player_id)
        self.state = MultiplayerGameState(
            room_id=created.room_id,
            room_code=created.room_code,
            player_id=created.player_id,
            host=snapshot.host,
            connection_status=ConnectionStatus.CONNECTING,
            waiting_for_player=True,
            game=snapshot.game_state,
        )
        self._subscribe()
        return self.state

    async def join_room(self, room_code: str, player_name: str) -> MultiplayerGameState:
        joined = await self._service.join_room(room_code, player_name)
        self.state = MultiplayerGameState(
            room_id=joined.room_id,
            room_code=joined.room_code,
            player_id=joined.player_id,
            host=joined.host,
            guest=joined.guest,
            connection_status=ConnectionStatus.CONNECTING,
            waiting_for_player=False,
            game=joined.game_state,
        )
        self._subscribe()
        return self.state

    async def leave_room(self) -> None:
        if self.state.room_id is None or self.state.player_id is None:
            return
        await self._service.leave_room(self.state.room_id, self.state.player_id)
        self.close()
        self.state = MultiplayerGameState()

    def resync(self) -> MultiplayerGameState:
        """Replace the folded game with the server's copy."""
        game = self._service.get_room_state(self.room_id, self.player_id)
        self.state = self.state.model_copy(update={"game": game})
        return self.state

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None
        self.state = self.state.model_copy(update={"connection_status": ConnectionStatus.DISCONNECTED})

    # --- Event folding ---

    def sync(self) -> MultiplayerGameState:
        """Fold every event delivered so far."""
        if self._subscription is None:
            return self.state
        self.state = reduce_all(self.state, self._subscription.drain())
        self._mark_if_ended()
        return self.state

    async def next_event(self) -> RoomEvent | None:
        """Wait for one event and fold it. Returns None when the stream has ended."""
        if self._subscription is None:
            return None
        event = await self._subscription.get()
        if event is None:
            self._mark_if_ended()
            return None
        self.state = reduce(self.state, event)
        return event

    # --- Actions ---

    async def start_game(self, options: GameOptions | None = None) -> None:
        await self._service.start_game(self.room_id, self.player_id, options or GameOptions())

    async def roll_dice(self, category: Category) -> RollResult:
        return await self._service.roll_dice(self.room_id, self.player_id, category)

    async def complete_answer(self) -> None:
        await self._service.complete_answer(self.room_id, self.player_id)

    async def award_sparks(self, spark_types: Iterable[SparkType | str], awarded_to: str | None = None) -> int:
        return await self._service.award_sparks(self.room_id, self.player_id, spark_types, awarded_to)

    async def use_power_up(self, power_up: PowerUpType) -> None:
        await self._service.use_power_up(self.room_id, self.player_id, power_up)

    async def next_turn(self) -> None:
        await self._service.next_turn(self.room_id, self.player_id)

    async def end_game(self) -> None:
        await self._service.end_game(self.room_id, self.player_id)

    async def reset_game(self) -> None:
        await self._service.reset_game(self.room_id, self.player_id)

    def toggle_bookmark(self, question_id: str) -> bool:
        """Bookmarks are private to this participant and never leave the device."""
        game = rules.toggle_bookmark(self.state.game, question_id)
        self.state = self.state.model_copy(update={"game": game})
        return question_id in game.bookmarked_questions

    # --- Internal helpers ---

    def _subscribe(self) -> None:
        self._subscription = self._service.subscribe_to_room(self.room_id, self.player_id)
        self.state = self.state.model_copy(update={"connection_status": ConnectionStatus.CONNECTED})
        logger.debug("subscribed to room", room_id=self.room_id, player_id=self.player_id)

    def _mark_if_ended(self) -> None:
        if self._subscription is not None and self._subscription.closed:
            self.state = self.state.model_copy(update={"connection_status": ConnectionStatus.DISCONNECTED})
