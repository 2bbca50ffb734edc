from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from relay_service.infrastructure.ws.protocol import WsOutbound

logger = logging.getLogger(__name__)


class WebSocketConnection:
    """Adapts a Starlette WebSocket to the transport Connection port."""

    def __init__(self, websocket: WebSocket, connection_id: str | None = None) -> None:
        self._ws = websocket
        self._id = connection_id or uuid.uuid4().hex
        self._send_lock = asyncio.Lock()
        self._closed = False

    @property
    def id(self) -> str:
        return self._id

    @property
    def websocket(self) -> WebSocket:
        return self._ws

    @property
    def is_open(self) -> bool:
        return (
            not self._closed
            and self._ws.application_state == WebSocketState.CONNECTED
            and self._ws.client_state == WebSocketState.CONNECTED
        )

    async def accept(self) -> None:
        await self._ws.accept()

    async def emit(self, event: str, data: Any) -> None:
        """Send one event frame. Frames for a closed connection are dropped."""
        if not self.is_open:
            logger.debug("Dropping %s for closed connection %s", event, self._id)
            return
        raw = WsOutbound(type=event, data=data).model_dump_json()
        # room fan-out from other connections' tasks may interleave with our own replies
        async with self._send_lock:
            try:
                await self._ws.send_text(raw)
            except Exception:
                self._closed = True
                raise

    async def close(self, code: int = 1000, reason: str = "") -> None:
        if self._closed:
            return
        self._closed = True
        if (
            self._ws.application_state != WebSocketState.CONNECTED
            or self._ws.client_state != WebSocketState.CONNECTED
        ):
            return
        try:
            await self._ws.close(code=code, reason=reason)
        except RuntimeError:
            logger.debug("Connection %s already closed by peer", self._id)
