from typing import Any
from uuid import UUID

import structlog
from pymongo.asynchronous.database import AsyncDatabase

from authgate.core.core import Service
from authgate.core.modules.user.models import User
from authgate.errors import NotFoundError, ValidationError
from authgate.utils import now

logger = structlog.get_logger(__name__)


class UserService(Service):
    """Manages user accounts. Every lookup goes to the database."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("users")

    async def on_start(self) -> None:
        await self._collection.create_index([("email", 1)], unique=True)

    async def get_user(self, user_id: str) -> User:
        """Get an active user by id."""
        try:
            key = UUID(user_id)
        except ValueError:
            raise NotFoundError(f"User '{user_id}' not found") from None
        user = User.from_mongo(await self._collection.find_one({"_id": key, "deleted_at": None}))
        if user is None:
            raise NotFoundError(f"User '{user_id}' not found")
        return user

    async def find_by_email(self, email: str) -> User:
        """Get an active user by email address, ignoring deleted accounts."""
        user = User.from_mongo(await self._collection.find_one({"email": normalize_email(email), "deleted_at": None}))
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def create_user(self, email: str, name: str | None = None) -> User:
        email = normalize_email(email)
        if not email or "@" not in email:
            raise ValidationError("Invalid email address")
        if await self._collection.find_one({"email": email}) is not None:
            raise ValidationError(f"User '{email}' already exists")

        user = User(email=email, name=name)
        await self._collection.insert_one(user.to_mongo())
        logger.info("user_created", user_id=user.user_id)
        return user

    async def mark_passkey_registered(self, user_id: str) -> None:
        """Record the first passkey registration. Later calls leave the timestamp alone."""
        await self._collection.update_one(
            {"_id": UUID(user_id), "passkey_registered_at": None}, {"$set": {"passkey_registered_at": now()}}
        )


def normalize_email(email: str) -> str:
    return email.strip().lower()
