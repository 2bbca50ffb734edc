from __future__ import annotations

from relay_service.domain.entities.user import UserProfile
from relay_service.infrastructure.db.models.user import UserModel


def model_to_entity(model: UserModel) -> UserProfile:
    return UserProfile(
        id=model.id,
        phone_number=model.phone_number,
        username=model.username,
        avatar_url=model.avatar_url,
        last_seen=model.last_seen,
    )
