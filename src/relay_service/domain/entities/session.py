from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime

from relay_service.domain.value_objects.identity import Identity
from relay_service.domain.entities.user import UserProfile
from relay_service.domain.value_objects.enums import SessionState


class SessionStateError(Exception):
    """Raised on an illegal session state transition."""


@dataclass(slots=True)
class Session:
    """Authentication state attached to one transport connection.

    ``identity`` moves from ``None`` to a verified identity exactly once and is
    never cleared while the connection lives. ``closed`` is terminal.
    """

    connection_id: str
    identity: Identity | None = None
    profile: UserProfile | None = None
    bound_at: datetime | None = None
    closed: bool = field(default=False)

    @property
    def state(self) -> SessionState:
        if self.closed:
            return SessionState.CLOSED
        if self.identity is not None:
            return SessionState.AUTHENTICATED
        return SessionState.UNAUTHENTICATED

    @property
    def is_authenticated(self) -> bool:
        return self.state == SessionState.AUTHENTICATED

    def bind(self, identity: Identity, profile: UserProfile, now: datetime) -> None:
        if self.closed:
            raise SessionStateError(f"Session {self.connection_id} is closed")
        if self.identity is not None:
            raise SessionStateError(
                f"Session {self.connection_id} already bound to {self.identity.id}"
            )
        self.identity = identity
        self.profile = profile
        self.bound_at = now

    def update_profile(self, username: str | None, avatar_url: str | None) -> None:
        if self.profile is None:
            raise SessionStateError(f"Session {self.connection_id} has no profile")
        self.profile = replace(self.profile, username=username, avatar_url=avatar_url)

    def close(self) -> None:
        self.closed = True
