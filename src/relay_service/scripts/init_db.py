"""Create the users and messages tables if they do not exist."""
from __future__ import annotations

import asyncio
import logging

from relay_service.infrastructure.db.base import Base
from relay_service.infrastructure.db.models import MessageModel, UserModel  # noqa: F401
from relay_service.infrastructure.db.session import engine

logger = logging.getLogger(__name__)


async def init_db() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()
    logger.info("Schema ready: %s", ", ".join(sorted(Base.metadata.tables)))


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    asyncio.run(init_db())


if __name__ == "__main__":
    main()
