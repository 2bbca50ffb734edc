from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    default_detail = ""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


# Authentication: emitted as authenticationFailed, then the connection closes.


class AuthError(AppError):
    pass


class CredentialMissingError(AuthError):
    default_detail = "No token provided."


class InvalidCredentialError(AuthError):
    default_detail = "Invalid or expired token."


class IncompleteIdentityError(AuthError):
    default_detail = "Token is missing required claims."


class ProfileResolutionError(AuthError):
    default_detail = "Could not load user profile."


class AlreadyAuthenticatedError(AppError):
    default_detail = "Connection is already authenticated."


# Authorization


class UnauthorizedError(AppError):
    default_detail = "Authentication required."


# Validation: reported to the requester, no side effects.


class ValidationError(AppError):
    pass


class MalformedMessageError(ValidationError):
    default_detail = "Message format incorrect."


class InvalidFormatError(ValidationError):
    default_detail = "Invalid data format."


class UsernameTooLongError(ValidationError):
    default_detail = "Username is too long."


# Persistence


class PersistenceError(AppError):
    default_detail = "Storage is unavailable."


class MessagePersistenceError(PersistenceError):
    default_detail = "Failed to save message."


class ProfileNotFoundError(PersistenceError):
    default_detail = "Profile not found."
