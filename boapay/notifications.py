"""
Notification Fan-out Module

Holds the open WebSocket connections and broadcasts JSON messages to all of
them. A connection whose send fails is dropped; broadcasting never raises.

Every message is an object {"type": ..., "message": ..., "data": ...} where
type is one of info (greeting on connect), echo (reply to inbound text) or
notification (server or user initiated broadcast).
"""

import asyncio
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Protocol, Set

from .logging_config import get_logger


class MessageType(Enum):
    INFO = "info"
    ECHO = "echo"
    NOTIFICATION = "notification"


class Connection(Protocol):
    """The part of a WebSocket the hub needs"""

    async def send_json(self, data: Any) -> None:
        ...


def build_message(message_type: MessageType, message: str,
                  data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    payload = {
        "type": message_type.value,
        "message": message,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if data is not None:
        payload["data"] = data
    return payload


class NotificationHub:
    """Registry of live connections with broadcast"""

    def __init__(self):
        self._connections: Set[Connection] = set()
        self.logger = get_logger("boapay.notifications")

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def connect(self, connection: Connection) -> None:
        """Register an accepted connection and greet it"""
        self._connections.add(connection)
        self.logger.info(f"Client connected ({self.connection_count} open)")
        await self.send(connection, build_message(MessageType.INFO, "Connected to Boapay notifications"))

    async def disconnect(self, connection: Connection) -> None:
        self._connections.discard(connection)
        self.logger.info(f"Client disconnected ({self.connection_count} open)")

    async def send(self, connection: Connection, message: Dict[str, Any]) -> bool:
        """Send to one connection; a failed connection is dropped"""
        try:
            await connection.send_json(message)
            return True
        except Exception as e:
            self.logger.warning(f"Dropping connection after failed send: {e}")
            self._connections.discard(connection)
            return False

    async def echo(self, connection: Connection, text: str) -> bool:
        return await self.send(connection, build_message(MessageType.ECHO, f"Echo: {text}"))

    async def broadcast(self, message: str, data: Optional[Dict[str, Any]] = None,
                        message_type: MessageType = MessageType.NOTIFICATION) -> int:
        """
        Send a message to every open connection

        Returns:
            Number of connections the message reached
        """
        payload = build_message(message_type, message, data)
        targets = list(self._connections)

        results = await asyncio.gather(*(self.send(c, payload) for c in targets))
        delivered = sum(1 for ok in results if ok)
        self.logger.info(f"Broadcast delivered to {delivered} of {len(targets)} connections")
        return delivered
