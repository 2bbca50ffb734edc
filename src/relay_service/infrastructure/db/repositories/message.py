from __future__ import annotations

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from relay_service.domain.entities.message import Message
from relay_service.infrastructure.db.mappers import message as mapper
from relay_service.infrastructure.db.models.message import MessageModel


class MessageWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def append(self, sender_id: str, recipient_id: str, content: str) -> Message:
        stmt = (
            pg_insert(MessageModel)
            .values(sender_id=sender_id, recipient_id=recipient_id, content=content)
            .returning(MessageModel)
        )
        result = await self._session.execute(stmt)
        return mapper.model_to_entity(result.scalar_one())
