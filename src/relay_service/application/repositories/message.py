from __future__ import annotations

from typing import Protocol

from relay_service.domain.entities.message import Message


class MessageWriter(Protocol):
    async def append(self, sender_id: str, recipient_id: str, content: str) -> Message:
        """Insert a message. The store generates message_id, created_at and status."""
        ...
