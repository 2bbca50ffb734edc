from __future__ import annotations

from typing import AsyncContextManager, Callable, Protocol

from relay_service.application.repositories.message import MessageWriter
from relay_service.application.repositories.user import UserReader, UserWriter


class UnitOfWork(Protocol):
    users: UserReader
    users_w: UserWriter
    messages_w: MessageWriter

    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...


UoWFactory = Callable[[], AsyncContextManager[UnitOfWork]]
