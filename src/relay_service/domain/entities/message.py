from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from relay_service.domain.value_objects.enums import MessageStatus


@dataclass(frozen=True, slots=True)
class Message:
    message_id: int
    sender_id: str
    recipient_id: str
    content: str
    created_at: datetime
    status: str = MessageStatus.SENT
