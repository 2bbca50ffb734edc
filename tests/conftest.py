"""Shared test fixtures."""
from __future__ import annotations

import itertools
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, AsyncIterator

import pytest
from sqlalchemy.exc import OperationalError

from relay_service.application.exceptions import InvalidCredentialError
from relay_service.domain.entities.message import Message
from relay_service.domain.entities.session import Session
from relay_service.domain.entities.user import UserProfile
from relay_service.domain.value_objects.identity import Identity
from relay_service.infrastructure.ws.manager import ConnectionManager

FIXED_NOW = datetime(2024, 5, 17, 15, 7, tzinfo=timezone.utc)


def db_down() -> OperationalError:
    return OperationalError("INSERT ...", {}, Exception("connection refused"))


@dataclass
class FixedClock:
    current: datetime = FIXED_NOW

    def now(self) -> datetime:
        return self.current


def make_profile(
    user_id: str = "U1",
    phone_number: str = "+15550001111",
    *,
    username: str | None = None,
    avatar_url: str | None = None,
) -> UserProfile:
    return UserProfile(
        id=user_id,
        phone_number=phone_number,
        username=username,
        avatar_url=avatar_url,
        last_seen=FIXED_NOW,
    )


@dataclass
class FakeVerifier:
    """Maps token strings to identities; anything else is rejected."""

    tokens: dict[str, Identity] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)

    async def verify(self, token: str) -> Identity:
        self.calls.append(token)
        identity = self.tokens.get(token)
        if identity is None:
            raise InvalidCredentialError("Firebase ID token has expired.")
        return identity


@dataclass
class FakeConnection:
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    sent: list[tuple[str, Any]] = field(default_factory=list)
    closed_with: int | None = None
    fail_sends: bool = False

    @property
    def is_open(self) -> bool:
        return self.closed_with is None

    async def emit(self, event: str, data: Any) -> None:
        if self.fail_sends:
            raise ConnectionResetError("peer gone")
        if self.is_open:
            self.sent.append((event, data))

    async def close(self, code: int = 1000, reason: str = "") -> None:
        if self.closed_with is None:
            self.closed_with = code

    def events(self, name: str) -> list[Any]:
        return [data for event, data in self.sent if event == name]


@dataclass
class FakeUserStore:
    rows: dict[str, UserProfile] = field(default_factory=dict)
    get_or_create_returns_none: bool = False
    fail: bool = False
    inserts: int = 0

    def _check(self) -> None:
        if self.fail:
            raise db_down()

    async def get_by_id(self, user_id: str) -> UserProfile | None:
        self._check()
        return self.rows.get(user_id)

    async def list_contacts(self, exclude_id: str) -> list[UserProfile]:
        self._check()
        others = [p for p in self.rows.values() if p.id != exclude_id]
        return sorted(others, key=lambda p: (p.username is None, p.username or "", p.id))

    async def get_or_create(self, user_id: str, phone_number: str, now: datetime) -> UserProfile | None:
        self._check()
        existing = self.rows.get(user_id)
        if existing is None:
            self.inserts += 1
            self.rows[user_id] = replace(make_profile(user_id, phone_number), last_seen=now)
        else:
            self.rows[user_id] = replace(existing, last_seen=now)
        if self.get_or_create_returns_none:
            return None
        return self.rows[user_id]

    async def update_profile(self, user_id: str, username: str | None, avatar_url: str | None) -> UserProfile | None:
        self._check()
        existing = self.rows.get(user_id)
        if existing is None:
            return None
        self.rows[user_id] = replace(existing, username=username, avatar_url=avatar_url)
        return self.rows[user_id]

    async def touch_last_seen(self, user_id: str, now: datetime) -> None:
        self._check()
        existing = self.rows.get(user_id)
        if existing is not None:
            self.rows[user_id] = replace(existing, last_seen=now)


@dataclass
class FakeMessageStore:
    messages: list[Message] = field(default_factory=list)
    fail: bool = False
    _ids: Any = field(default_factory=lambda: itertools.count(1))

    async def append(self, sender_id: str, recipient_id: str, content: str) -> Message:
        if self.fail:
            raise db_down()
        msg = Message(
            message_id=next(self._ids),
            sender_id=sender_id,
            recipient_id=recipient_id,
            content=content,
            created_at=FIXED_NOW,
        )
        self.messages.append(msg)
        return msg


@dataclass
class FakeUoW:
    """In-memory UoW for unit tests."""

    users: FakeUserStore = field(default_factory=FakeUserStore)
    messages_w: FakeMessageStore = field(default_factory=FakeMessageStore)
    commits: int = 0
    rollbacks: int = 0

    @property
    def users_w(self) -> FakeUserStore:
        return self.users

    async def commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        self.rollbacks += 1

    def factory(self):
        @asynccontextmanager
        async def _uow() -> AsyncIterator[FakeUoW]:
            try:
                yield self
            except BaseException:
                await self.rollback()
                raise

        return _uow


def bound_session(connection: FakeConnection, profile: UserProfile) -> Session:
    session = Session(connection_id=connection.id)
    session.bind(Identity(id=profile.id, phone_number=profile.phone_number), profile, FIXED_NOW)
    return session


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def uow() -> FakeUoW:
    return FakeUoW()


@pytest.fixture
def rooms() -> ConnectionManager:
    return ConnectionManager()


@pytest.fixture
def verifier() -> FakeVerifier:
    return FakeVerifier(
        tokens={
            "token-u1": Identity(id="U1", phone_number="+15550001111"),
            "token-u2": Identity(id="U2", phone_number="+15550002222"),
        }
    )
