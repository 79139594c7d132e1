"""Registry of live viewer connections and named rooms, with fan-out.

All membership changes and every broadcast snapshot go through one
asyncio.Lock. Sends happen outside the lock so a slow socket never holds
up connect/disconnect, and a failed send is skipped, never retried.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

from pydantic import BaseModel
from starlette.websockets import WebSocket, WebSocketState

from salesboard.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(eq=False)
class Connection:
    """One open viewer socket and the rooms it joined."""

    websocket: WebSocket
    id: str = field(default_factory=lambda: uuid4().hex)
    rooms: set[str] = field(default_factory=set)
    user_id: str | None = None

    @property
    def is_open(self) -> bool:
        return (
            self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )


def encode_event(event_type: str, data: Any) -> str:
    """Serialize an event into the ``{"type", "data"}`` text frame."""
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json", by_alias=True)
    return json.dumps({"type": event_type, "data": data}, default=str)


class BroadcastHub:
    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._connections: dict[str, Connection] = {}
        self._rooms: dict[str, set[str]] = {}

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def room_members(self, room: str) -> set[str]:
        return set(self._rooms.get(room, ()))

    async def add(self, websocket: WebSocket) -> Connection:
        connection = Connection(websocket=websocket)
        async with self._lock:
            self._connections[connection.id] = connection
        logger.info("ws_connected", connection_id=connection.id, total=self.connection_count)
        return connection

    async def remove(self, connection: Connection) -> None:
        async with self._lock:
            self._connections.pop(connection.id, None)
            for room in connection.rooms:
                members = self._rooms.get(room)
                if members is None:
                    continue
                members.discard(connection.id)
                if not members:
                    del self._rooms[room]
            connection.rooms.clear()
        logger.info("ws_disconnected", connection_id=connection.id, total=self.connection_count)

    async def join(self, connection: Connection, room: str) -> None:
        async with self._lock:
            if connection.id not in self._connections:
                return
            self._rooms.setdefault(room, set()).add(connection.id)
            connection.rooms.add(room)
        logger.debug("ws_joined_room", connection_id=connection.id, room=room)

    async def broadcast_all(self, event_type: str, data: Any) -> int:
        """Send to every connection; returns how many sends succeeded."""
        async with self._lock:
            targets = list(self._connections.values())
        return await self._deliver(targets, event_type, data)

    async def broadcast_room(self, room: str, event_type: str, data: Any) -> int:
        async with self._lock:
            targets = [
                self._connections[cid]
                for cid in self._rooms.get(room, ())
                if cid in self._connections
            ]
        return await self._deliver(targets, event_type, data)

    async def send_to(self, connection: Connection, event_type: str, data: Any) -> bool:
        return await self._send(connection, encode_event(event_type, data))

    async def _deliver(self, targets: list[Connection], event_type: str, data: Any) -> int:
        if not targets:
            return 0
        frame = encode_event(event_type, data)
        results = await asyncio.gather(*(self._send(c, frame) for c in targets))
        delivered = sum(results)
        logger.debug("broadcast_sent", event=event_type, targets=len(targets), delivered=delivered)
        return delivered

    async def _send(self, connection: Connection, frame: str) -> bool:
        if not connection.is_open:
            return False
        try:
            await connection.websocket.send_text(frame)
        except Exception as e:
            logger.debug("ws_send_skipped", connection_id=connection.id, error=str(e))
            return False
        return True
