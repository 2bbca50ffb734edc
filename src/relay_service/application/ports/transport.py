from __future__ import annotations

from typing import Any, Protocol


class Connection(Protocol):
    """A live, bidirectional client channel."""

    @property
    def id(self) -> str: ...

    @property
    def is_open(self) -> bool: ...

    async def emit(self, event: str, data: Any) -> None: ...

    async def close(self, code: int = 1000, reason: str = "") -> None: ...


class RoomRouter(Protocol):
    """Identity-addressed fan-out over live connections."""

    def join(self, room: str, connection: Connection) -> None: ...

    async def emit(
        self,
        room: str,
        event: str,
        data: dict[str, Any],
        *,
        exclude: str | None = None,
    ) -> int: ...
