from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError as PydanticValidationError

from relay_service.api.deps import ClockDep, UoWFactoryDep, VerifierDep
from relay_service.api.middleware.correlation_id import correlation_id_ctx
from relay_service.application.dto import events
from relay_service.application.exceptions import (
    AlreadyAuthenticatedError,
    AppError,
    AuthError,
    PersistenceError,
    ProfileNotFoundError,
    UnauthorizedError,
    ValidationError,
)
from relay_service.application.ports.auth import TokenVerifier
from relay_service.application.ports.clock import Clock
from relay_service.application.uow import UoWFactory
from relay_service.config import settings
from relay_service.domain.entities.session import Session
from relay_service.infrastructure.ws import protocol
from relay_service.infrastructure.ws.connection import WebSocketConnection
from relay_service.infrastructure.ws.manager import ConnectionManager
from relay_service.infrastructure.ws.protocol import WsInbound
from relay_service.services import message_service, session_service

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])

manager = ConnectionManager()

CLOSE_AUTH_FAILED = 4001
CLOSE_INTERNAL_ERROR = 1011

SEND_REQUIRES_AUTH = "Authentication required to send messages."


def get_manager() -> ConnectionManager:
    return manager


class _Handler:
    """Per-connection event dispatch. Events are handled one at a time, in arrival order."""

    def __init__(
        self,
        conn: WebSocketConnection,
        session: Session,
        verifier: TokenVerifier,
        uow_factory: UoWFactory,
        clock: Clock,
    ) -> None:
        self.conn = conn
        self.session = session
        self.verifier = verifier
        self.uow_factory = uow_factory
        self.clock = clock

    async def dispatch(self, msg: WsInbound) -> None:
        if msg.type == "authenticate":
            await self.on_authenticate(msg.data)
        elif msg.type == "sendMessage":
            await self.on_send_message(msg.data)
        elif msg.type == "typing":
            await self.on_typing(msg.data)
        elif msg.type == "updateProfile":
            await self.on_update_profile(msg.data)
        elif msg.type == "requestContacts":
            await self.on_request_contacts()
        elif msg.type == "ping":
            await self.conn.emit(events.PONG, {})
        else:
            await self.conn.emit(events.ERROR, events.failure(f"Unknown event: {msg.type}"))

    async def on_authenticate(self, credential: Any) -> None:
        try:
            await session_service.authenticate(
                self.conn,
                self.session,
                credential,
                self.verifier,
                self.uow_factory,
                manager,
                self.clock,
                timeout=settings.AUTH_VERIFY_TIMEOUT_SECONDS,
            )
        except AlreadyAuthenticatedError:
            logger.info(
                "Connection %s already authenticated as %s, ignoring",
                self.conn.id, self.session.identity.id if self.session.identity else "?",
            )
        except AuthError as exc:
            logger.info("Authentication failed on %s: %s", self.conn.id, exc.detail)
            await self.fail_authentication(exc.detail)

    async def fail_authentication(self, reason: str) -> None:
        self.session.close()
        await self.conn.emit(events.AUTHENTICATION_FAILED, events.failure(reason))
        await self.conn.close(code=CLOSE_AUTH_FAILED, reason="Authentication failed")

    async def on_send_message(self, data: Any) -> None:
        if not self.session.is_authenticated:
            logger.info("Unauthenticated connection %s tried to send a message", self.conn.id)
            await self.conn.emit(events.ERROR, events.failure(SEND_REQUIRES_AUTH))
            return
        try:
            dto = protocol.parse_send_message(data)
            await message_service.send_message(
                self.conn, self.session, dto, self.uow_factory, manager,
            )
        except (UnauthorizedError, ValidationError, PersistenceError) as exc:
            await self.conn.emit(events.ERROR, events.failure(exc.detail))

    async def on_typing(self, data: Any) -> None:
        dto = protocol.parse_typing(data)
        if dto is None:
            return
        await message_service.relay_typing(self.conn, self.session, dto, manager)

    async def on_update_profile(self, data: Any) -> None:
        if not self.session.is_authenticated:
            logger.info("Unauthenticated connection %s tried to update a profile", self.conn.id)
            await self.conn.emit(events.ERROR, events.failure(UnauthorizedError().detail))
            return
        try:
            dto = protocol.parse_update_profile(data)
            await session_service.update_profile(
                self.conn,
                self.session,
                dto,
                self.uow_factory,
                username_max_length=settings.USERNAME_MAX_LENGTH,
            )
        except UnauthorizedError as exc:
            await self.conn.emit(events.ERROR, events.failure(exc.detail))
        except ProfileNotFoundError as exc:
            # authenticated without a backing row: not recoverable on this connection
            logger.error("Profile row missing for authenticated connection %s", self.conn.id)
            await self.conn.emit(events.PROFILE_UPDATE_ERROR, events.failure(exc.detail))
            self.session.close()
            await self.conn.close(code=CLOSE_INTERNAL_ERROR, reason="Profile missing")
        except (ValidationError, PersistenceError) as exc:
            await self.conn.emit(events.PROFILE_UPDATE_ERROR, events.failure(exc.detail))

    async def on_request_contacts(self) -> None:
        try:
            await session_service.list_contacts(self.conn, self.session, self.uow_factory)
        except AppError as exc:
            await self.conn.emit(events.ERROR, events.failure(exc.detail))


@router.websocket("/ws")
async def ws_relay(
    websocket: WebSocket,
    verifier: VerifierDep,
    uow_factory: UoWFactoryDep,
    clock: ClockDep,
) -> None:
    conn = WebSocketConnection(websocket)
    session = Session(connection_id=conn.id)
    ctx_token = correlation_id_ctx.set(conn.id)
    await conn.accept()
    logger.info("Connection %s opened", conn.id)

    handler = _Handler(conn, session, verifier, uow_factory, clock)
    deadline_task = asyncio.create_task(
        _auth_deadline(handler, settings.AUTH_TIMEOUT_SECONDS), name=f"ws-auth-deadline-{conn.id}",
    )
    heartbeat_task = asyncio.create_task(
        _heartbeat(conn), name=f"ws-heartbeat-{conn.id}",
    )
    try:
        await _read_loop(handler)
    except WebSocketDisconnect as exc:
        logger.info("Connection %s disconnected (code=%s)", conn.id, exc.code)
    except Exception:
        logger.exception("WS error on %s", conn.id)
    finally:
        deadline_task.cancel()
        heartbeat_task.cancel()
        manager.disconnect(conn)
        await session_service.disconnect(session, uow_factory, clock)
        await conn.close()
        correlation_id_ctx.reset(ctx_token)


async def _auth_deadline(handler: _Handler, timeout: float) -> None:
    """Close a connection that has not authenticated within ``timeout`` seconds."""
    try:
        await asyncio.sleep(timeout)
        if handler.session.identity is None and not handler.session.closed:
            logger.info("Connection %s did not authenticate within %.0fs", handler.conn.id, timeout)
            await handler.fail_authentication("Authentication timed out.")
    except asyncio.CancelledError:
        pass
    except Exception:
        logger.debug("Auth deadline close failed for %s", handler.conn.id, exc_info=True)


async def _heartbeat(conn: WebSocketConnection) -> None:
    interval = settings.WS_HEARTBEAT_SECONDS
    try:
        while conn.is_open:
            await asyncio.sleep(interval)
            await conn.emit(events.PONG, {})
    except asyncio.CancelledError:
        pass
    except Exception:
        pass


async def _read_loop(handler: _Handler) -> None:
    conn = handler.conn
    while conn.is_open:
        raw = await conn.websocket.receive_text()
        try:
            msg = WsInbound.model_validate_json(raw)
        except PydanticValidationError:
            await conn.emit(events.ERROR, events.failure("Invalid payload."))
            continue
        await handler.dispatch(msg)
