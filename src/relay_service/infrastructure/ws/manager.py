"""In-process room registry with optional cross-instance fan-out."""
from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any

from relay_service.application.ports.bus import EventPublisher
from relay_service.application.ports.transport import Connection

logger = logging.getLogger(__name__)

ROOM_EMIT_EVENT = "room.emit"


class ConnectionManager:
    """Tracks which live connections belong to which identity room.

    Membership is added when a session authenticates and dropped when its
    transport closes. Emits iterate over a snapshot, so joins and leaves that
    race an emit never break it.
    """

    def __init__(
        self,
        publisher: EventPublisher | None = None,
        channel: str = "",
        instance_id: str | None = None,
    ) -> None:
        self._rooms: dict[str, dict[str, Connection]] = {}
        self._memberships: dict[str, set[str]] = {}
        self._publisher = publisher
        self._channel = channel
        self.instance_id = instance_id or uuid.uuid4().hex

    def set_publisher(self, publisher: EventPublisher | None, channel: str = "") -> None:
        self._publisher = publisher
        self._channel = channel

    def join(self, room: str, connection: Connection) -> None:
        self._rooms.setdefault(room, {})[connection.id] = connection
        self._memberships.setdefault(connection.id, set()).add(room)
        logger.debug("Connection %s joined room %s (members=%d)", connection.id, room, len(self._rooms[room]))

    def disconnect(self, connection: Connection) -> None:
        """Remove a connection from every room it joined."""
        for room in self._memberships.pop(connection.id, set()):
            members = self._rooms.get(room)
            if members is None:
                continue
            members.pop(connection.id, None)
            if not members:
                del self._rooms[room]
        logger.debug("Connection %s left all rooms", connection.id)

    def members(self, room: str) -> list[Connection]:
        return list(self._rooms.get(room, {}).values())

    def rooms_of(self, connection_id: str) -> set[str]:
        return set(self._memberships.get(connection_id, set()))

    async def emit(
        self,
        room: str,
        event: str,
        data: dict[str, Any],
        *,
        exclude: str | None = None,
    ) -> int:
        """Deliver to every member of ``room`` here and, if configured, on other instances.

        Returns the number of local connections that accepted the frame.
        """
        delivered = await self.emit_local(room, event, data, exclude=exclude)
        if self._publisher is not None:
            envelope = {
                "event_type": ROOM_EMIT_EVENT,
                "origin": self.instance_id,
                "room": room,
                "event": event,
                "data": data,
                "exclude": exclude,
            }
            try:
                await self._publisher.publish(self._channel, envelope)
            except Exception:
                logger.exception("Failed to publish %s for room %s", event, room)
        return delivered

    async def emit_local(
        self,
        room: str,
        event: str,
        data: dict[str, Any],
        *,
        exclude: str | None = None,
    ) -> int:
        targets = [c for c in self.members(room) if c.id != exclude]
        if not targets:
            return 0
        results = await asyncio.gather(
            *(c.emit(event, data) for c in targets),
            return_exceptions=True,
        )
        delivered = 0
        for conn, result in zip(targets, results):
            if isinstance(result, BaseException):
                logger.warning("Delivery of %s to %s failed: %r", event, conn.id, result)
            else:
                delivered += 1
        return delivered

    async def dispatch_remote(self, event_type: str, data: dict[str, Any]) -> None:
        """Re-emit a room envelope published by another instance."""
        if event_type != ROOM_EMIT_EVENT:
            return
        if data.get("origin") == self.instance_id:
            return
        room = data.get("room")
        event = data.get("event")
        if not room or not event:
            return
        await self.emit_local(room, event, data.get("data") or {}, exclude=data.get("exclude"))
