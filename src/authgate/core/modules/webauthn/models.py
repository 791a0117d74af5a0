"""Passkey credential records and typed WebAuthn ceremony results."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from authgate.core.db import MongoModel
from authgate.utils import now


class PasskeyCredential(MongoModel):
    """A registered WebAuthn public-key credential.

    Bound to the relying party it was registered under. Indexed on
    credential_id - unique, (user_id, rp_id).
    """

    user_id: str
    rp_id: str
    credential_id: str  # base64url, as sent by the browser
    public_key: bytes  # COSE-encoded public key
    sign_count: int = 0
    transports: list[str] = []
    device_name: str = "Passkey"
    created_at: datetime = Field(default_factory=now)
    last_used_at: datetime | None = None


class PasskeyView(BaseModel):
    """Passkey information (API representation)."""

    credential_id: str = Field(..., description="Base64url credential ID")
    device_name: str = Field(..., description="Name given to the authenticator at registration")
    transports: list[str] = Field(default_factory=list, description="Transports reported by the authenticator")
    created_at: datetime = Field(..., description="Registration time")
    last_used_at: datetime | None = Field(None, description="Last successful authentication")

    @classmethod
    def from_domain(cls, credential: PasskeyCredential) -> "PasskeyView":
        return cls(
            credential_id=credential.credential_id,
            device_name=credential.device_name,
            transports=credential.transports,
            created_at=credential.created_at,
            last_used_at=credential.last_used_at,
        )


class Verified(BaseModel):
    """The ceremony succeeded for `user_id` with `credential_id`."""

    verified: Literal[True] = True
    user_id: str
    credential_id: str


class NotVerified(BaseModel):
    """The ceremony was rejected. `reason` is for logs, never for clients."""

    verified: Literal[False] = False
    reason: str


CeremonyResult = Verified | NotVerified
