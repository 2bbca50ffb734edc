from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class UserProfileResponse(BaseModel):
    uid: str = Field(validation_alias="id")
    phoneNumber: str = Field(validation_alias="phone_number")
    username: str | None
    profilePicUrl: str | None = Field(validation_alias="avatar_url")
    lastSeen: datetime = Field(validation_alias="last_seen")

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)
