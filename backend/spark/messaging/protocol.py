"""Abstract connection protocol for MessagePack binary communication."""

from abc import ABC, abstractmethod
from typing import Any

from spark.messaging.encoder import decode, encode


class ConnectionProtocol(ABC):
    """
    One client link, independent of the transport behind it.

    The message router only talks to this interface, so room flows can be
    tested with an in-memory connection instead of a real WebSocket.
    """

    @property
    @abstractmethod
    def connection_id(self) -> str:
        """Unique identifier for this connection."""
        ...

    @abstractmethod
    async def send_bytes(self, data: bytes) -> None: ...

    @abstractmethod
    async def receive_bytes(self) -> bytes: ...

    @abstractmethod
    async def close(self, code: int = 1000, reason: str = "") -> None: ...

    async def send_message(self, data: dict[str, Any]) -> None:
        """Send a message to the client using MessagePack encoding."""
        await self.send_bytes(encode(data))

    async def receive_message(self) -> dict[str, Any]:
        """Receive a message from the client using MessagePack decoding."""
        raw = await self.receive_bytes()
        return decode(raw)
