import contextlib
import json
from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.routing import Route, WebSocketRoute

from spark.logic.exceptions import (
    NotAuthorizedError,
    NotHostError,
    RoomNotFoundError,
    ServerAtCapacityError,
    SparkRuleError,
)
from spark.logic.questions import QuestionCatalog
from spark.messaging.router import MessageRouter
from spark.server.settings import SparkServerSettings
from spark.server.types import CreateRoomRequest, JoinRoomRequest
from spark.server.websocket import websocket_endpoint
from spark.session.registry import RoomRegistry
from spark.session.service import RoomActionService
from shared.build_info import APP_VERSION, GIT_COMMIT
from shared.logging import setup_logging

logger = structlog.get_logger()

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from starlette.requests import Request
    from starlette.websockets import WebSocket

_MAX_REQUEST_BODY_SIZE = 4096

# Rule errors not listed here are conflicts with the current room or game state.
_ERROR_STATUS: dict[type[SparkRuleError], int] = {
    RoomNotFoundError: 404,
    NotHostError: 403,
    NotAuthorizedError: 403,
    ServerAtCapacityError: 503,
}
_DEFAULT_RULE_ERROR_STATUS = 409


def _error_response(error: SparkRuleError) -> JSONResponse:
    status_code = _ERROR_STATUS.get(type(error), _DEFAULT_RULE_ERROR_STATUS)
    return JSONResponse({"error": error.message, "code": error.code}, status_code=status_code)


async def _read_json(request: Request) -> dict | JSONResponse:
    """Return the decoded body, or the error response to send instead."""
    raw_body = await request.body()
    if len(raw_body) > _MAX_REQUEST_BODY_SIZE:
        return JSONResponse({"error": "Request body too large"}, status_code=413)
    try:
        body = json.loads(raw_body)
    except (ValueError, UnicodeDecodeError):
        return JSONResponse({"error": "Invalid request body"}, status_code=400)
    if not isinstance(body, dict):
        return JSONResponse({"error": "Invalid request body"}, status_code=400)
    return body


async def health(_request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok", "version": APP_VERSION, "commit": GIT_COMMIT})


async def status(request: Request) -> JSONResponse:
    service: RoomActionService = request.app.state.service
    settings: SparkServerSettings = request.app.state.settings
    return JSONResponse(
        {
            "status": "ok",
            "version": APP_VERSION,
            "commit": GIT_COMMIT,
            "rooms": service.registry.room_count,
            "subscribers": service.registry.bus.subscriber_count(),
            "max_rooms": settings.max_rooms,
        },
    )


async def create_room(request: Request) -> JSONResponse:
    service: RoomActionService = request.app.state.service

    body = await _read_json(request)
    if isinstance(body, JSONResponse):
        return body
    try:
        room_request = CreateRoomRequest(**body)
    except (TypeError, ValidationError):
        return JSONResponse({"error": "Invalid request body"}, status_code=400)

    try:
        created = service.create_room(room_request.host_name)
    except SparkRuleError as e:
        return _error_response(e)
    return JSONResponse(created.model_dump(mode="json"), status_code=201)


async def join_room(request: Request) -> JSONResponse:
    service: RoomActionService = request.app.state.service

    body = await _read_json(request)
    if isinstance(body, JSONResponse):
        return body
    try:
        join_request = JoinRoomRequest(**body)
    except (TypeError, ValidationError):
        return JSONResponse({"error": "Invalid request body"}, status_code=400)

    try:
        joined = await service.join_room(join_request.room_code, join_request.player_name)
    except SparkRuleError as e:
        return _error_response(e)
    return JSONResponse(joined.model_dump(mode="json"))


async def room_state(request: Request) -> JSONResponse:
    service: RoomActionService = request.app.state.service
    room_id = request.path_params["room_id"]
    player_id = request.query_params.get("player_id")
    if not player_id:
        return JSONResponse({"error": "player_id is required"}, status_code=400)

    try:
        snapshot = service.registry.snapshot(room_id, player_id)
    except SparkRuleError as e:
        return _error_response(e)
    return JSONResponse(snapshot.model_dump(mode="json"))


def create_app(
    settings: SparkServerSettings | None = None,
    service: RoomActionService | None = None,
    message_router: MessageRouter | None = None,
) -> Starlette:
    if settings is None:  # pragma: no cover
        settings = SparkServerSettings()

    if service is None:
        registry = RoomRegistry(max_rooms=settings.max_rooms, room_ttl_seconds=settings.room_ttl_seconds)
        service = RoomActionService(registry, QuestionCatalog.from_file(settings.questions_path))

    if message_router is None:
        message_router = MessageRouter(service)

    async def ws_endpoint(websocket: WebSocket) -> None:
        await websocket_endpoint(websocket, message_router)

    routes = [
        Route("/health", health, methods=["GET"]),
        Route("/status", status, methods=["GET"]),
        Route("/rooms", create_room, methods=["POST"]),
        Route("/rooms/join", join_room, methods=["POST"]),
        Route("/rooms/{room_id}/state", room_state, methods=["GET"]),
        WebSocketRoute("/ws", ws_endpoint),
    ]

    @contextlib.asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncIterator[None]:
        service.registry.start_room_reaper()
        try:
            yield
        finally:
            await service.registry.stop_room_reaper()

    app = Starlette(routes=routes, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
    )
    app.state.settings = settings
    app.state.service = service

    logger.info("spark server ready", questions=len(service.catalog))
    return app


def get_app() -> Starlette:  # pragma: no cover  # deadcode: ignore
    """ASGI application factory for production use (e.g., uvicorn --factory)."""
    _settings = SparkServerSettings()
    setup_logging(log_dir=_settings.log_dir)
    return create_app(settings=_settings)
