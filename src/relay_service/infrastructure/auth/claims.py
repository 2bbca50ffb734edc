from __future__ import annotations

from typing import Any

from relay_service.application.exceptions import IncompleteIdentityError
from relay_service.domain.value_objects.identity import Identity


def identity_from_claims(payload: dict[str, Any]) -> Identity:
    """Build an Identity from decoded token claims; both id and phone number are required."""
    uid = payload.get("sub") or payload.get("user_id")
    phone_number = payload.get("phone_number")
    if not uid or not phone_number:
        raise IncompleteIdentityError(
            "Token is missing required claims (uid or phone_number)."
        )
    return Identity(id=str(uid), phone_number=str(phone_number))
