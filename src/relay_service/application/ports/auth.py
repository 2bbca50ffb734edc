from __future__ import annotations

from typing import Protocol

from relay_service.domain.value_objects.identity import Identity


class TokenVerifier(Protocol):
    async def verify(self, token: str) -> Identity:
        """Return the verified identity or raise InvalidCredentialError / IncompleteIdentityError."""
        ...
