"""Import all models so metadata.create_all sees every table."""
from relay_service.infrastructure.db.models.message import MessageModel
from relay_service.infrastructure.db.models.user import UserModel

__all__ = [
    "MessageModel",
    "UserModel",
]
