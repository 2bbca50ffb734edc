from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class UserProfile:
    id: str
    phone_number: str
    username: str | None
    avatar_url: str | None
    last_seen: datetime
