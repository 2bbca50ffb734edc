from __future__ import annotations

import jwt

from relay_service.application.exceptions import InvalidCredentialError
from relay_service.domain.value_objects.identity import Identity
from relay_service.infrastructure.auth.claims import identity_from_claims


class HS256Verifier:
    """Verify JWTs signed with a shared HS256 secret (development and tests)."""

    def __init__(self, secret: str, algorithm: str = "HS256") -> None:
        self._secret = secret
        self._algorithm = algorithm

    async def verify(self, token: str) -> Identity:
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except jwt.PyJWTError as exc:
            raise InvalidCredentialError(str(exc)) from exc
        return identity_from_claims(payload)
