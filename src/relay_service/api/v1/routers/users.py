from __future__ import annotations

from fastapi import APIRouter

from relay_service.api.deps import ClockDep, CurrentIdentity, UoWDep, UoWFactoryDep
from relay_service.api.v1.schemas.user import UserProfileResponse
from relay_service.services import session_service

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.get("/me", response_model=UserProfileResponse)
async def get_me(
    identity: CurrentIdentity,
    uow_factory: UoWFactoryDep,
    clock: ClockDep,
) -> UserProfileResponse:
    profile = await session_service.resolve_profile(identity, uow_factory, clock)
    return UserProfileResponse.model_validate(profile)


@router.get("", response_model=list[UserProfileResponse])
async def list_contacts(
    identity: CurrentIdentity,
    uow: UoWDep,
) -> list[UserProfileResponse]:
    contacts = await uow.users.list_contacts(identity.id)
    return [UserProfileResponse.model_validate(p) for p in contacts]
