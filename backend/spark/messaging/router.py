import asyncio
import contextlib
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from spark.logic.exceptions import SparkRuleError
from spark.messaging.types import (
    ActionResultMessage,
    AwardSparksMessage,
    CompleteAnswerMessage,
    CreateRoomMessage,
    EndGameMessage,
    ErrorMessage,
    GetRoomStateMessage,
    JoinRoomMessage,
    LeaveRoomMessage,
    NextTurnMessage,
    PingMessage,
    PongMessage,
    ResetGameMessage,
    RollDiceMessage,
    RoomEventMessage,
    SessionErrorCode,
    StartGameMessage,
    SubscribeMessage,
    UnsubscribeMessage,
    UsePowerUpMessage,
    parse_client_message,
)

if TYPE_CHECKING:
    from spark.messaging.protocol import ConnectionProtocol
    from spark.messaging.types import ClientMessage
    from spark.session.bus import Subscription
    from spark.session.service import RoomActionService

logger = structlog.get_logger()

_MAX_REQUEST_ID_LENGTH = 64


class _Forwarder:
    """A room subscription pumped onto one connection by a background task."""

    def __init__(self, subscription: Subscription, player_id: str, task: asyncio.Task[None]) -> None:
        self.subscription = subscription
        self.player_id = player_id
        self.task = task


class MessageRouter:
    """
    Routes incoming messages to the room action service.

    Holds the per-connection subscriptions so a disconnect tears down every
    listener the connection opened. Contains no transport code and can be
    tested with in-memory connections.
    """

    def __init__(self, service: RoomActionService) -> None:
        self._service = service
        self._forwarders: dict[str, dict[str, _Forwarder]] = {}  # connection_id -> room_id -> _Forwarder

    async def handle_message(
        self,
        connection: ConnectionProtocol,
        raw_message: dict[str, Any],
    ) -> None:
        try:
            message = parse_client_message(raw_message)
        except (ValidationError, KeyError, TypeError, ValueError) as e:
            logger.warning("invalid message", connection_id=connection.connection_id, error=str(e))
            await connection.send_message(
                ErrorMessage(
                    code=SessionErrorCode.INVALID_MESSAGE,
                    message=str(e),
                    request_id=_request_id(raw_message),
                ).model_dump(mode="json"),
            )
            return

        if isinstance(message, PingMessage):
            await connection.send_message(PongMessage(request_id=message.request_id).model_dump(mode="json"))
            return

        room_id = getattr(message, "room_id", None)
        player_id = getattr(message, "player_id", None)
        with structlog.contextvars.bound_contextvars(room_id=room_id, player_id=player_id):
            try:
                data = await self._dispatch(connection, message)
            except SparkRuleError as e:
                logger.warning("action rejected", action=message.type, code=e.code, reason=e.message)
                await connection.send_message(
                    ErrorMessage(
                        code=SessionErrorCode(e.code),
                        message=e.message,
                        request_id=message.request_id,
                    ).model_dump(mode="json"),
                )
                return

        await connection.send_message(
            ActionResultMessage(
                request_id=message.request_id,
                action=message.type,
                data=data,
            ).model_dump(mode="json"),
        )

    async def _dispatch(  # noqa: PLR0911
        self,
        connection: ConnectionProtocol,
        message: ClientMessage,
    ) -> dict[str, Any]:
        """Run one action and return the payload of its ``action_result``."""
        service = self._service
        if isinstance(message, CreateRoomMessage):
            return service.create_room(message.host_name).model_dump(mode="json")
        if isinstance(message, JoinRoomMessage):
            joined = await service.join_room(message.room_code, message.player_name)
            return joined.model_dump(mode="json")
        if isinstance(message, LeaveRoomMessage):
            self._stop_forwarding(connection.connection_id, message.room_id)
            await service.leave_room(message.room_id, message.player_id)
            return {}
        if isinstance(message, GetRoomStateMessage):
            snapshot = service.registry.snapshot(message.room_id, message.player_id)
            return snapshot.model_dump(mode="json")
        if isinstance(message, SubscribeMessage):
            self._start_forwarding(connection, message.room_id, message.player_id)
            return {"room_id": message.room_id}
        if isinstance(message, UnsubscribeMessage):
            self._stop_forwarding(connection.connection_id, message.room_id)
            return {"room_id": message.room_id}
        if isinstance(message, StartGameMessage):
            state = await service.start_game(message.room_id, message.player_id, message.settings)
            return {"total_questions": state.total_questions}
        if isinstance(message, RollDiceMessage):
            result = await service.roll_dice(message.room_id, message.player_id, message.category)
            return result.model_dump(mode="json")
        if isinstance(message, CompleteAnswerMessage):
            await service.complete_answer(message.room_id, message.player_id)
            return {}
        if isinstance(message, AwardSparksMessage):
            points = await service.award_sparks(
                message.room_id,
                message.player_id,
                message.spark_types,
                message.awarded_to,
            )
            return {"points": points}
        if isinstance(message, UsePowerUpMessage):
            await service.use_power_up(message.room_id, message.player_id, message.power_up)
            return {}
        if isinstance(message, NextTurnMessage):
            state = await service.next_turn(message.room_id, message.player_id)
            return {"question_count": state.question_count, "game_phase": state.game_phase.value}
        if isinstance(message, EndGameMessage):
            await service.end_game(message.room_id, message.player_id)
            return {}
        if isinstance(message, ResetGameMessage):
            await service.reset_game(message.room_id, message.player_id)
            return {}
        raise SparkRuleError(f"Unsupported message type: {message.type}")

    # --- Subscriptions ---

    def _start_forwarding(self, connection: ConnectionProtocol, room_id: str, player_id: str) -> None:
        connection_forwarders = self._forwarders.setdefault(connection.connection_id, {})
        existing = connection_forwarders.get(room_id)
        if existing is not None and not existing.task.done():
            return
        subscription = self._service.subscribe_to_room(room_id, player_id)
        self._service.registry.set_connected(room_id, player_id, connected=True)
        task = asyncio.create_task(self._forward(connection, subscription))
        connection_forwarders[room_id] = _Forwarder(subscription, player_id, task)

    def _stop_forwarding(self, connection_id: str, room_id: str) -> None:
        connection_forwarders = self._forwarders.get(connection_id)
        if not connection_forwarders:
            return
        forwarder = connection_forwarders.pop(room_id, None)
        if forwarder is not None:
            forwarder.subscription.close()
            forwarder.task.cancel()
        if not connection_forwarders:
            self._forwarders.pop(connection_id, None)

    async def _forward(self, connection: ConnectionProtocol, subscription: Subscription) -> None:
        """Send every event of the subscription to the connection until either ends."""
        async for event in subscription:
            try:
                await connection.send_message(
                    RoomEventMessage(
                        room_id=subscription.room_id,
                        event=event.model_dump(mode="json"),
                    ).model_dump(mode="json"),
                )
            except (ConnectionError, RuntimeError, OSError):
                logger.info("connection gone, dropping room stream", connection_id=connection.connection_id)
                subscription.close()
                return

    def subscription_count(self, connection_id: str) -> int:
        return len(self._forwarders.get(connection_id, {}))

    async def handle_connect(self, connection: ConnectionProtocol) -> None:
        self._forwarders.setdefault(connection.connection_id, {})

    async def handle_disconnect(self, connection: ConnectionProtocol) -> None:
        """Tear down every subscription opened over the connection."""
        forwarders = self._forwarders.pop(connection.connection_id, {})
        for room_id, forwarder in forwarders.items():
            forwarder.subscription.close()
            forwarder.task.cancel()
            self._service.registry.set_connected(room_id, forwarder.player_id, connected=False)
        for forwarder in forwarders.values():
            with contextlib.suppress(asyncio.CancelledError):
                await forwarder.task


def _request_id(raw_message: dict[str, Any]) -> str | None:
    value = raw_message.get("request_id")
    return value if isinstance(value, str) and len(value) <= _MAX_REQUEST_ID_LENGTH else None
