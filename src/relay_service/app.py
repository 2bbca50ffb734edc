from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import redis.asyncio as aioredis
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from relay_service.api.middleware.correlation_id import CorrelationIdMiddleware
from relay_service.api.v1.routers import health, users, ws
from relay_service.application.exceptions import (
    AuthError,
    PersistenceError,
    ProfileResolutionError,
    UnauthorizedError,
    ValidationError,
)
from relay_service.config import settings
from relay_service.infrastructure.bus.redis_pubsub import RedisRoomBus
from relay_service.infrastructure.db.session import engine

logger = logging.getLogger(__name__)


async def _check_database() -> None:
    """Refuse to start without a reachable database."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    logger.info("Database reachable at %s:%s", settings.DB_HOST, settings.DB_PORT)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    if settings.DB_CHECK_ON_STARTUP:
        await _check_database()

    manager = ws.get_manager()
    app.state.redis = None
    bus: RedisRoomBus | None = None
    if settings.REDIS_URL:
        app.state.redis = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
        bus = RedisRoomBus(app.state.redis, settings.REDIS_PUBSUB_CHANNEL, manager.dispatch_remote)
        await bus.start()
        manager.set_publisher(bus, bus.channel)
        logger.info("Cross-instance room fan-out enabled (instance=%s)", manager.instance_id)

    yield

    if bus is not None:
        manager.set_publisher(None)
        await bus.stop()
        await app.state.redis.aclose()
        logger.info("Redis connection pool closed")
    await engine.dispose()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Relay Service",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(users.router)
    app.include_router(ws.router)

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ProfileResolutionError)
    async def _profile_resolution(_req: Request, exc: ProfileResolutionError) -> JSONResponse:
        return JSONResponse(status_code=503, content={"detail": exc.detail})

    @app.exception_handler(AuthError)
    async def _auth(_req: Request, exc: AuthError) -> JSONResponse:
        return JSONResponse(status_code=401, content={"detail": exc.detail})

    @app.exception_handler(UnauthorizedError)
    async def _unauthorized(_req: Request, exc: UnauthorizedError) -> JSONResponse:
        return JSONResponse(status_code=401, content={"detail": exc.detail})

    @app.exception_handler(ValidationError)
    async def _validation(_req: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": exc.detail})

    @app.exception_handler(PersistenceError)
    async def _persistence(_req: Request, exc: PersistenceError) -> JSONResponse:
        return JSONResponse(status_code=503, content={"detail": exc.detail})

    @app.exception_handler(SQLAlchemyError)
    async def _database(_req: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.error("Database error: %s", exc)
        return JSONResponse(status_code=503, content={"detail": "Storage is unavailable."})
