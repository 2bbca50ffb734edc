from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ProfileUpdateDTO:
    username: str = ""
    avatar_url: str = ""
