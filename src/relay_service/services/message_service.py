from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from relay_service.application.dto import events
from relay_service.application.dto.message import SendMessageDTO, TypingDTO
from relay_service.application.exceptions import (
    MalformedMessageError,
    MessagePersistenceError,
)
from relay_service.application.ports.transport import Connection, RoomRouter
from relay_service.application.uow import UoWFactory
from relay_service.domain.entities.message import Message
from relay_service.domain.entities.session import Session
from relay_service.services.session_service import authorize

logger = logging.getLogger(__name__)


async def send_message(
    connection: Connection,
    session: Session,
    dto: SendMessageDTO,
    uow_factory: UoWFactory,
    rooms: RoomRouter,
) -> Message:
    """Persist a direct message, fan it out to the recipient, confirm to the sender.

    Nothing reaches the recipient unless the insert committed. A recipient
    with no live connections is not an error.
    """
    identity = authorize(session)

    recipient_id = dto.recipient_id.strip()
    content = dto.content.strip()
    if not recipient_id or not content:
        raise MalformedMessageError()

    try:
        async with uow_factory() as uow:
            message = await uow.messages_w.append(identity.id, recipient_id, content)
            await uow.commit()
    except SQLAlchemyError as exc:
        logger.exception("Failed to persist message from %s to %s", identity.id, recipient_id)
        raise MessagePersistenceError() from exc

    delivered = await rooms.emit(recipient_id, events.RECEIVE_MESSAGE, events.receive_message(message))
    logger.info(
        "Message %s from %s to %s delivered to %d local connection(s)",
        message.message_id, identity.id, recipient_id, delivered,
    )

    await connection.emit(
        events.MESSAGE_SENT_CONFIRMATION,
        events.message_sent_confirmation(message, dto.temp_id),
    )
    return message


async def relay_typing(
    connection: Connection,
    session: Session,
    dto: TypingDTO,
    rooms: RoomRouter,
) -> None:
    """Best-effort typing signal to the recipient's other connections."""
    if not session.is_authenticated or session.identity is None:
        return
    if not dto.recipient_id:
        return
    await rooms.emit(
        dto.recipient_id,
        events.TYPING_STATUS,
        events.typing_status(session.identity.id, dto.is_typing),
        exclude=connection.id,
    )
