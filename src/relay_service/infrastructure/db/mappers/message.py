from __future__ import annotations

from relay_service.domain.entities.message import Message
from relay_service.infrastructure.db.models.message import MessageModel


def model_to_entity(model: MessageModel) -> Message:
    return Message(
        message_id=model.message_id,
        sender_id=model.sender_id,
        recipient_id=model.recipient_id,
        content=model.content,
        created_at=model.created_at,
        status=model.status,
    )
