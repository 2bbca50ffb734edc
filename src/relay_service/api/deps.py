"""FastAPI dependency injection helpers."""
from __future__ import annotations

from typing import Annotated, AsyncIterator

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from relay_service.application.exceptions import AuthError
from relay_service.application.ports.auth import TokenVerifier
from relay_service.application.ports.clock import Clock, SystemClock
from relay_service.application.uow import UnitOfWork, UoWFactory
from relay_service.config import settings
from relay_service.domain.value_objects.identity import Identity
from relay_service.infrastructure.auth.firebase_verifier import FirebaseVerifier
from relay_service.infrastructure.auth.hs256_verifier import HS256Verifier
from relay_service.infrastructure.db.uow import sqlalchemy_uow

_bearer_scheme = HTTPBearer()


def get_uow_factory() -> UoWFactory:
    return sqlalchemy_uow


UoWFactoryDep = Annotated[UoWFactory, Depends(get_uow_factory)]


async def get_uow(uow_factory: UoWFactoryDep) -> AsyncIterator[UnitOfWork]:
    async with uow_factory() as uow:
        yield uow


UoWDep = Annotated[UnitOfWork, Depends(get_uow)]


def _get_verifier() -> TokenVerifier:
    if settings.AUTH_VERIFY_MODE == "firebase":
        assert settings.FIREBASE_PROJECT_ID, "FIREBASE_PROJECT_ID must be set when AUTH_VERIFY_MODE=firebase"
        return FirebaseVerifier(settings.FIREBASE_PROJECT_ID, settings.FIREBASE_JWKS_URL)
    return HS256Verifier(settings.JWT_SECRET, settings.JWT_ALGORITHM)


_verifier: TokenVerifier | None = None


def get_verifier() -> TokenVerifier:
    global _verifier  # noqa: PLW0603
    if _verifier is None:
        _verifier = _get_verifier()
    return _verifier


VerifierDep = Annotated[TokenVerifier, Depends(get_verifier)]


_clock = SystemClock()


def get_clock() -> Clock:
    return _clock


ClockDep = Annotated[Clock, Depends(get_clock)]


async def get_current_identity(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(_bearer_scheme)],
    verifier: VerifierDep,
) -> Identity:
    try:
        return await verifier.verify(credentials.credentials)
    except AuthError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=exc.detail,
        ) from exc


CurrentIdentity = Annotated[Identity, Depends(get_current_identity)]
