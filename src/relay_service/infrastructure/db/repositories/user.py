from __future__ import annotations

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from relay_service.domain.entities.user import UserProfile
from relay_service.infrastructure.db.mappers import user as mapper
from relay_service.infrastructure.db.models.user import UserModel


class UserReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, user_id: str) -> UserProfile | None:
        result = await self._session.execute(
            select(UserModel).where(UserModel.id == user_id)
        )
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def list_contacts(self, exclude_id: str) -> list[UserProfile]:
        stmt = (
            select(UserModel)
            .where(UserModel.id != exclude_id)
            .order_by(UserModel.username.asc().nulls_last(), UserModel.id.asc())
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]


class UserWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_or_create(
        self,
        user_id: str,
        phone_number: str,
        now: datetime,
    ) -> UserProfile | None:
        """Upsert keyed by id. An existing row only gets its last_seen bumped."""
        stmt = (
            pg_insert(UserModel)
            .values(id=user_id, phone_number=phone_number, last_seen=now)
            .on_conflict_do_update(
                index_elements=[UserModel.id],
                set_={"last_seen": now},
            )
            .returning(UserModel)
        )
        result = await self._session.execute(stmt)
        row = result.scalar_one_or_none()
        return mapper.model_to_entity(row) if row else None

    async def update_profile(
        self,
        user_id: str,
        username: str | None,
        avatar_url: str | None,
    ) -> UserProfile | None:
        stmt = (
            update(UserModel)
            .where(UserModel.id == user_id)
            .values(username=username, avatar_url=avatar_url)
            .returning(UserModel)
        )
        result = await self._session.execute(stmt)
        row = result.scalar_one_or_none()
        return mapper.model_to_entity(row) if row else None

    async def touch_last_seen(self, user_id: str, now: datetime) -> None:
        await self._session.execute(
            update(UserModel).where(UserModel.id == user_id).values(last_seen=now)
        )
