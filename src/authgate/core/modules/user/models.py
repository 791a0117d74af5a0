from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from authgate.core.db import MongoModel
from authgate.utils import now


class User(MongoModel):
    """Account identified by email. Authenticates with passkeys only."""

    email: str
    name: str | None = None
    created_at: datetime = Field(default_factory=now)
    deleted_at: datetime | None = None
    passkey_registered_at: datetime | None = None  # first passkey, never reset

    @property
    def user_id(self) -> str:
        """String form of the id, as stored in sessions and credentials."""
        return str(self.id)


class UserView(BaseModel):
    """User account information (API representation)."""

    user_id: UUID = Field(..., description="User ID")
    email: str = Field(..., description="Email address")
    name: str | None = Field(None, description="Display name")

    @classmethod
    def from_domain(cls, user: User) -> "UserView":
        """Create view model from domain model."""
        return cls(user_id=user.id, email=user.email, name=user.name)
