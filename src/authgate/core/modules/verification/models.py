"""Device verification token models."""

from datetime import datetime

from pydantic import BaseModel, Field

from authgate.core.db import MongoModel
from authgate.utils import now


class DeviceVerification(MongoModel):
    """Single-use, time-boxed proof that the user can read mail sent to `email`.

    Indexed on token - unique. Marked verified exactly once, then deleted when redeemed for a
    registration, by the cleanup sweep, or by the next check of the same token.
    """

    token: str
    user_id: str
    email: str
    expires_at: datetime
    verified: bool = False
    verified_at: datetime | None = None
    created_at: datetime = Field(default_factory=now)


class DeviceVerificationResult(BaseModel):
    """Outcome of a successful token check."""

    user_id: str = Field(..., description="User the verified device belongs to")
    verified: bool = Field(True, description="Always true, failures raise instead")
