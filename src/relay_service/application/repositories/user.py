from __future__ import annotations

from datetime import datetime
from typing import Protocol

from relay_service.domain.entities.user import UserProfile


class UserReader(Protocol):
    async def get_by_id(self, user_id: str) -> UserProfile | None: ...

    async def list_contacts(self, exclude_id: str) -> list[UserProfile]: ...


class UserWriter(Protocol):
    async def get_or_create(
        self,
        user_id: str,
        phone_number: str,
        now: datetime,
    ) -> UserProfile | None:
        """Insert the user or, on id conflict, bump last_seen. Return the row, if any came back."""
        ...

    async def update_profile(
        self,
        user_id: str,
        username: str | None,
        avatar_url: str | None,
    ) -> UserProfile | None:
        """Return the updated row, or None if no row has this id."""
        ...

    async def touch_last_seen(self, user_id: str, now: datetime) -> None: ...
