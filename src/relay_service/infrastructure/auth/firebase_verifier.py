from __future__ import annotations

import asyncio
import logging

import jwt
from jwt import PyJWKClient

from relay_service.application.exceptions import InvalidCredentialError
from relay_service.domain.value_objects.identity import Identity
from relay_service.infrastructure.auth.claims import identity_from_claims

logger = logging.getLogger(__name__)

ISSUER_PREFIX = "https://securetoken.google.com/"


class FirebaseVerifier:
    """Verify Firebase ID tokens against Google's securetoken JWKS."""

    def __init__(self, project_id: str, jwks_url: str) -> None:
        self._project_id = project_id
        self._issuer = f"{ISSUER_PREFIX}{project_id}"
        self._jwk_client = PyJWKClient(jwks_url)

    async def verify(self, token: str) -> Identity:
        try:
            # PyJWKClient fetches keys over blocking HTTP; keep it off the event loop.
            signing_key = await asyncio.to_thread(
                self._jwk_client.get_signing_key_from_jwt, token,
            )
            payload = jwt.decode(
                token,
                signing_key.key,
                algorithms=["RS256"],
                audience=self._project_id,
                issuer=self._issuer,
                options={"require": ["exp", "iat", "sub"]},
            )
        except jwt.PyJWTError as exc:
            logger.debug("Firebase token rejected: %s", exc)
            raise InvalidCredentialError(str(exc)) from exc
        return identity_from_claims(payload)
