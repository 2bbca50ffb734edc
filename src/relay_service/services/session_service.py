"""Connection-to-identity binding: authentication, authorization and profile edits."""
from __future__ import annotations

import asyncio
import logging

from sqlalchemy.exc import SQLAlchemyError

from relay_service.application.dto import events
from relay_service.application.dto.profile import ProfileUpdateDTO
from relay_service.application.exceptions import (
    AlreadyAuthenticatedError,
    AuthError,
    CredentialMissingError,
    InvalidCredentialError,
    PersistenceError,
    ProfileNotFoundError,
    ProfileResolutionError,
    UnauthorizedError,
    UsernameTooLongError,
)
from relay_service.application.ports.auth import TokenVerifier
from relay_service.application.ports.clock import Clock
from relay_service.application.ports.transport import Connection, RoomRouter
from relay_service.application.uow import UoWFactory
from relay_service.domain.entities.session import Session
from relay_service.domain.entities.user import UserProfile
from relay_service.domain.value_objects.identity import Identity

logger = logging.getLogger(__name__)

DEFAULT_AUTH_TIMEOUT = 10.0
DEFAULT_USERNAME_MAX_LENGTH = 50


async def authenticate(
    connection: Connection,
    session: Session,
    credential: object,
    verifier: TokenVerifier,
    uow_factory: UoWFactory,
    rooms: RoomRouter,
    clock: Clock,
    *,
    timeout: float = DEFAULT_AUTH_TIMEOUT,
) -> UserProfile | None:
    """Promote an unauthenticated session to one bound to a verified identity.

    On success the session is bound, the connection joins the identity's room
    and ``authenticationSuccess`` is emitted to this connection only. Returns
    None without side effects visible to the client if the session was closed
    while verification or profile resolution was in flight.

    Raises AlreadyAuthenticatedError for a repeated attempt and an AuthError
    subclass for every failure the caller must answer by closing the connection.
    """
    if session.identity is not None:
        raise AlreadyAuthenticatedError()
    if session.closed:
        return None
    if not isinstance(credential, str) or not credential.strip():
        raise CredentialMissingError()

    identity = await _verify(verifier, credential, timeout)
    profile = await resolve_profile(identity, uow_factory, clock)

    if session.closed or not connection.is_open:
        logger.info("Connection %s closed during authentication of %s, discarding", connection.id, identity.id)
        return None

    session.bind(identity, profile, clock.now())
    rooms.join(identity.room, connection)
    logger.info("Connection %s authenticated as %s", connection.id, identity.id)

    await connection.emit(events.AUTHENTICATION_SUCCESS, events.authentication_success(profile))
    return profile


async def _verify(verifier: TokenVerifier, credential: str, timeout: float) -> Identity:
    try:
        return await asyncio.wait_for(verifier.verify(credential), timeout)
    except AuthError:
        raise
    except asyncio.TimeoutError as exc:
        raise InvalidCredentialError("Token verification timed out.") from exc
    except Exception as exc:
        logger.exception("Token verifier failed unexpectedly")
        raise InvalidCredentialError() from exc


async def resolve_profile(
    identity: Identity,
    uow_factory: UoWFactory,
    clock: Clock,
) -> UserProfile:
    """Get-or-create the profile row for a verified identity. Never retried."""
    try:
        async with uow_factory() as uow:
            profile = await uow.users_w.get_or_create(identity.id, identity.phone_number, clock.now())
            if profile is None:
                logger.warning("get_or_create returned no row for %s, reading back", identity.id)
                profile = await uow.users.get_by_id(identity.id)
            await uow.commit()
    except SQLAlchemyError as exc:
        logger.exception("Profile resolution failed for %s", identity.id)
        raise ProfileResolutionError("Database error while loading profile.") from exc

    if profile is None:
        logger.error("No profile row for %s after get_or_create", identity.id)
        raise ProfileResolutionError()
    return profile


def authorize(session: Session) -> Identity:
    """Return the bound identity or raise UnauthorizedError."""
    if not session.is_authenticated or session.identity is None:
        raise UnauthorizedError()
    return session.identity


async def update_profile(
    connection: Connection,
    session: Session,
    dto: ProfileUpdateDTO,
    uow_factory: UoWFactory,
    *,
    username_max_length: int = DEFAULT_USERNAME_MAX_LENGTH,
) -> UserProfile:
    identity = authorize(session)

    username = dto.username.strip()
    avatar_url = dto.avatar_url.strip()
    if len(username) > username_max_length:
        raise UsernameTooLongError(f"Username cannot exceed {username_max_length} characters.")

    try:
        async with uow_factory() as uow:
            updated = await uow.users_w.update_profile(
                identity.id, username or None, avatar_url or None,
            )
            if updated is None:
                raise ProfileNotFoundError()
            await uow.commit()
    except SQLAlchemyError as exc:
        logger.exception("Profile update failed for %s", identity.id)
        raise PersistenceError("Failed to update profile.") from exc

    session.update_profile(updated.username, updated.avatar_url)
    logger.info("Profile updated for %s", identity.id)
    await connection.emit(events.PROFILE_UPDATE_SUCCESS, events.profile_update_success(updated))
    return updated


async def list_contacts(
    connection: Connection,
    session: Session,
    uow_factory: UoWFactory,
) -> list[UserProfile]:
    identity = authorize(session)
    try:
        async with uow_factory() as uow:
            contacts = await uow.users.list_contacts(identity.id)
    except SQLAlchemyError as exc:
        logger.exception("Contact listing failed for %s", identity.id)
        raise PersistenceError("Failed to load contacts.") from exc

    await connection.emit(
        events.CONTACTS_LIST,
        {"contacts": [events.contact(p) for p in contacts]},
    )
    return contacts


async def disconnect(session: Session, uow_factory: UoWFactory, clock: Clock) -> None:
    """Close the session; an authenticated one gets its last_seen bumped."""
    was_authenticated = session.is_authenticated
    session.close()
    if not was_authenticated or session.identity is None:
        return
    try:
        async with uow_factory() as uow:
            await uow.users_w.touch_last_seen(session.identity.id, clock.now())
            await uow.commit()
    except SQLAlchemyError:
        logger.exception("Failed to record last_seen for %s", session.identity.id)
