from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Identity:
    """Externally verified caller identity extracted from an ID token."""

    id: str
    phone_number: str

    @property
    def room(self) -> str:
        """Routing room addressing every connection bound to this identity."""
        return self.id
