from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class SendMessageDTO:
    recipient_id: str
    content: str
    temp_id: Any = None


@dataclass(frozen=True, slots=True)
class TypingDTO:
    recipient_id: str | None
    is_typing: bool
