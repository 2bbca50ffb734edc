"""Seed development data: two users and a short exchange between them."""
from __future__ import annotations

import asyncio
import logging

from relay_service.application.ports.clock import SystemClock
from relay_service.infrastructure.db.uow import sqlalchemy_uow

logger = logging.getLogger(__name__)

USERS = [
    ("dev-alice", "+15550000001", "Alice"),
    ("dev-bob", "+15550000002", "Bob"),
]

MESSAGES = [
    ("dev-alice", "dev-bob", "Hi Bob!"),
    ("dev-bob", "dev-alice", "Hey Alice, how are you?"),
    ("dev-alice", "dev-bob", "Great, thanks."),
]


async def seed() -> None:
    clock = SystemClock()
    async with sqlalchemy_uow() as uow:
        for user_id, phone_number, username in USERS:
            await uow.users_w.get_or_create(user_id, phone_number, clock.now())
            await uow.users_w.update_profile(user_id, username, None)
        for sender_id, recipient_id, content in MESSAGES:
            await uow.messages_w.append(sender_id, recipient_id, content)
        await uow.commit()
    logger.info("Seeded %d users and %d messages", len(USERS), len(MESSAGES))


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    asyncio.run(seed())


if __name__ == "__main__":
    main()
