"""WebSocket message envelope models."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, StrictStr
from pydantic import ValidationError as PydanticValidationError

from relay_service.application.dto.message import SendMessageDTO, TypingDTO
from relay_service.application.dto.profile import ProfileUpdateDTO
from relay_service.application.exceptions import InvalidFormatError, MalformedMessageError


class WsInbound(BaseModel):
    """Client → Server."""

    type: str  # authenticate | sendMessage | typing | updateProfile | requestContacts | ping
    data: Any = None


class WsOutbound(BaseModel):
    """Server → Client."""

    type: str
    data: Any = None


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore")


class SendMessagePayload(_Payload):
    recipientUid: StrictStr
    content: StrictStr
    tempId: Any = None


class TypingPayload(_Payload):
    recipientUid: StrictStr | None = None
    isTyping: bool = False


class UpdateProfilePayload(_Payload):
    username: StrictStr | None = None
    profilePicUrl: StrictStr | None = None


def parse_send_message(data: Any) -> SendMessageDTO:
    try:
        payload = SendMessagePayload.model_validate(data)
    except PydanticValidationError as exc:
        raise MalformedMessageError() from exc
    return SendMessageDTO(
        recipient_id=payload.recipientUid,
        content=payload.content,
        temp_id=payload.tempId,
    )


def parse_typing(data: Any) -> TypingDTO | None:
    try:
        payload = TypingPayload.model_validate(data)
    except PydanticValidationError:
        return None
    return TypingDTO(recipient_id=payload.recipientUid, is_typing=payload.isTyping)


def parse_update_profile(data: Any) -> ProfileUpdateDTO:
    try:
        payload = UpdateProfilePayload.model_validate(data)
    except PydanticValidationError as exc:
        raise InvalidFormatError() from exc
    # null means "unset", same as an empty string
    return ProfileUpdateDTO(
        username=payload.username or "",
        avatar_url=payload.profilePicUrl or "",
    )
