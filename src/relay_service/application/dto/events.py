"""Outbound event names and payload shapes of the client protocol."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from relay_service.domain.entities.message import Message
from relay_service.domain.entities.user import UserProfile

AUTHENTICATION_SUCCESS = "authenticationSuccess"
AUTHENTICATION_FAILED = "authenticationFailed"
RECEIVE_MESSAGE = "receiveMessage"
MESSAGE_SENT_CONFIRMATION = "messageSentConfirmation"
TYPING_STATUS = "typingStatus"
PROFILE_UPDATE_SUCCESS = "profileUpdateSuccess"
PROFILE_UPDATE_ERROR = "profileUpdateError"
CONTACTS_LIST = "contactsList"
ERROR = "error"
PONG = "pong"


def format_display_time(ts: datetime) -> str:
    """12-hour clock with two-digit hour and minute in UTC, e.g. ``03:07 PM``."""
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc)
    return ts.strftime("%I:%M %p")


def authentication_success(profile: UserProfile) -> dict[str, Any]:
    return {
        "uid": profile.id,
        "phoneNumber": profile.phone_number,
        "username": profile.username,
        "profilePicUrl": profile.avatar_url,
    }


def receive_message(message: Message) -> dict[str, Any]:
    return {
        "id": message.message_id,
        "sender": message.sender_id,
        "content": message.content,
        "timestamp": format_display_time(message.created_at),
    }


def message_sent_confirmation(message: Message, temp_id: Any) -> dict[str, Any]:
    return {
        "tempId": temp_id,
        "dbId": message.message_id,
        "timestamp": format_display_time(message.created_at),
        "status": str(message.status),
    }


def typing_status(sender_id: str, is_typing: bool) -> dict[str, Any]:
    return {"senderUid": sender_id, "isTyping": is_typing}


def profile_update_success(profile: UserProfile) -> dict[str, Any]:
    return {"username": profile.username, "profilePicUrl": profile.avatar_url}


def contact(profile: UserProfile) -> dict[str, Any]:
    return {
        "uid": profile.id,
        "phoneNumber": profile.phone_number,
        "username": profile.username,
        "profilePicUrl": profile.avatar_url,
        "lastSeen": profile.last_seen.isoformat(),
    }


def failure(message: str) -> dict[str, Any]:
    return {"message": message}
