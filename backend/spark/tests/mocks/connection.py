import asyncio
from typing import Any
from uuid import uuid4

from spark.messaging.encoder import decode, encode
from spark.messaging.protocol import ConnectionProtocol


class MockConnection(ConnectionProtocol):
    """In-memory connection that records every frame the server sends."""

    def __init__(self, connection_id: str | None = None) -> None:
        self._connection_id = connection_id or uuid4().hex
        self._outbox: list[bytes] = []
        self._inbox: asyncio.Queue[bytes] = asyncio.Queue()
        self._closed = False
        self.close_code: int | None = None

    @property
    def connection_id(self) -> str:
        return self._connection_id

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def sent_messages(self) -> list[dict[str, Any]]:
        return [decode(data) for data in self._outbox]

    async def send_bytes(self, data: bytes) -> None:
        if self._closed:
            raise ConnectionError("connection closed")
        self._outbox.append(data)

    async def receive_bytes(self) -> bytes:
        return await self._inbox.get()

    async def close(self, code: int = 1000, reason: str = "") -> None:  # noqa: ARG002
        self._closed = True
        self.close_code = code

    def simulate_receive(self, message: dict[str, Any]) -> None:
        self._inbox.put_nowait(encode(message))

    def messages_of_type(self, message_type: str) -> list[dict[str, Any]]:
        return [m for m in self.sent_messages if m.get("type") == message_type]

    def room_events(self) -> list[dict[str, Any]]:
        return [m["event"] for m in self.messages_of_type("room_event")]
