"""Adapter around the `webauthn` library.

Owns challenge storage (Redis) and credential storage (MongoDB) so that the
library's cryptographic checks are the only thing delegated. Results leave this
module as Verified / NotVerified, never as raw library payloads.
"""

import json
from typing import Any

import structlog
from pymongo.asynchronous.database import AsyncDatabase
from webauthn import (
    generate_authentication_options,
    generate_registration_options,
    options_to_json,
    verify_authentication_response,
    verify_registration_response,
)
from webauthn.helpers import base64url_to_bytes, bytes_to_base64url
from webauthn.helpers.exceptions import WebAuthnException
from webauthn.helpers.structs import (
    AttestationConveyancePreference,
    AuthenticatorAttachment,
    AuthenticatorSelectionCriteria,
    AuthenticatorTransport,
    PublicKeyCredentialDescriptor,
    ResidentKeyRequirement,
    UserVerificationRequirement,
)

from authgate.core.core import Service
from authgate.core.modules.relying_party.models import RelyingPartyConfig
from authgate.core.modules.webauthn.models import CeremonyResult, NotVerified, PasskeyCredential, Verified
from authgate.errors import NoCredentialsError, NotFoundError
from authgate.utils import now

logger = structlog.get_logger(__name__)

CHALLENGE_KEY_PREFIX = "webauthn:challenge:"


def _transports(values: list[str]) -> list[AuthenticatorTransport]:
    """Convert transport strings, dropping values the library does not know."""
    known = {t.value for t in AuthenticatorTransport}
    return [AuthenticatorTransport(v) for v in values if v in known]


class WebAuthnService(Service):
    """Registration and authentication ceremonies plus credential bookkeeping."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("passkey_credentials")

    async def on_start(self) -> None:
        await self._collection.create_index([("credential_id", 1)], unique=True)
        await self._collection.create_index([("user_id", 1), ("rp_id", 1)])

    # Challenges

    async def store_challenge(self, user_id: str, challenge: bytes) -> None:
        await self.redis.set(
            f"{CHALLENGE_KEY_PREFIX}{user_id}", bytes_to_base64url(challenge), ex=self.config.challenge_ttl_seconds
        )

    async def consume_challenge(self, user_id: str) -> bytes | None:
        """Get and delete the pending challenge (single-use)."""
        value = await self.redis.getdel(f"{CHALLENGE_KEY_PREFIX}{user_id}")
        if value is None:
            return None
        return base64url_to_bytes(str(value))

    # Credentials

    async def list_credentials(self, user_id: str, rp_id: str) -> list[PasskeyCredential]:
        return await PasskeyCredential.list_cursor(self._collection.find({"user_id": user_id, "rp_id": rp_id}))

    async def has_credentials(self, user_id: str) -> bool:
        """True when the user has a passkey under any relying party."""
        return await self._collection.find_one({"user_id": user_id}) is not None

    async def delete_credential(self, user_id: str, credential_id: str, rp_id: str) -> None:
        result = await self._collection.delete_one({"user_id": user_id, "rp_id": rp_id, "credential_id": credential_id})
        if result.deleted_count == 0:
            raise NotFoundError("Passkey not found")
        logger.info("passkey_deleted", user_id=user_id)

    # Registration

    async def start_registration(
        self, user_id: str, rp: RelyingPartyConfig, user_name: str, user_display_name: str | None = None
    ) -> dict[str, Any]:
        existing = await self.list_credentials(user_id, rp.rp_id)
        options = generate_registration_options(
            rp_id=rp.rp_id,
            rp_name=rp.rp_name,
            user_id=user_id.encode("utf-8"),
            user_name=user_name,
            user_display_name=user_display_name or user_name,
            attestation=AttestationConveyancePreference.NONE,
            authenticator_selection=AuthenticatorSelectionCriteria(
                authenticator_attachment=AuthenticatorAttachment.PLATFORM,
                resident_key=ResidentKeyRequirement.PREFERRED,
                user_verification=UserVerificationRequirement.PREFERRED,
            ),
            exclude_credentials=[
                PublicKeyCredentialDescriptor(id=base64url_to_bytes(c.credential_id), transports=_transports(c.transports))
                for c in existing
            ],
            timeout=self.config.challenge_ttl_seconds * 1000,
        )
        await self.store_challenge(user_id, options.challenge)
        return dict(json.loads(options_to_json(options)))

    async def finish_registration(
        self, user_id: str, credential: dict[str, Any], rp: RelyingPartyConfig, device_name: str | None = None
    ) -> CeremonyResult:
        challenge = await self.consume_challenge(user_id)
        if challenge is None:
            return NotVerified(reason="challenge_expired")

        try:
            verification = verify_registration_response(
                credential=credential,
                expected_challenge=challenge,
                expected_rp_id=rp.rp_id,
                expected_origin=rp.expected_origin,
            )
        except WebAuthnException as e:
            return NotVerified(reason=f"registration_rejected: {e}")

        credential_id = bytes_to_base64url(verification.credential_id)
        if await self._collection.find_one({"credential_id": credential_id}) is not None:
            return NotVerified(reason="credential_already_registered")

        response = credential.get("response")
        transports = response.get("transports", []) if isinstance(response, dict) else []
        record = PasskeyCredential(
            user_id=user_id,
            rp_id=rp.rp_id,
            credential_id=credential_id,
            public_key=verification.credential_public_key,
            sign_count=verification.sign_count,
            transports=[str(t) for t in transports],
            device_name=device_name or "Passkey",
        )
        await self._collection.insert_one(record.to_mongo())
        logger.info("passkey_registered", user_id=user_id)
        return Verified(user_id=user_id, credential_id=credential_id)

    # Authentication

    async def start_authentication(self, user_id: str, rp: RelyingPartyConfig) -> dict[str, Any]:
        credentials = await self.list_credentials(user_id, rp.rp_id)
        if not credentials:
            raise NoCredentialsError

        options = generate_authentication_options(
            rp_id=rp.rp_id,
            # Platform authenticators only, no cross-device QR flow
            allow_credentials=[
                PublicKeyCredentialDescriptor(
                    id=base64url_to_bytes(c.credential_id), transports=[AuthenticatorTransport.INTERNAL]
                )
                for c in credentials
            ],
            user_verification=UserVerificationRequirement.PREFERRED,
            timeout=self.config.challenge_ttl_seconds * 1000,
        )
        await self.store_challenge(user_id, options.challenge)
        return dict(json.loads(options_to_json(options)))

    async def finish_authentication(
        self, user_id: str, credential: dict[str, Any], rp: RelyingPartyConfig
    ) -> CeremonyResult:
        challenge = await self.consume_challenge(user_id)
        if challenge is None:
            return NotVerified(reason="challenge_expired")

        stored = PasskeyCredential.from_mongo(
            await self._collection.find_one(
                {"user_id": user_id, "rp_id": rp.rp_id, "credential_id": credential.get("id")}
            )
        )
        if stored is None:
            return NotVerified(reason="unknown_credential")

        try:
            verification = verify_authentication_response(
                credential=credential,
                expected_challenge=challenge,
                expected_rp_id=rp.rp_id,
                expected_origin=rp.expected_origin,
                credential_public_key=stored.public_key,
                credential_current_sign_count=stored.sign_count,
            )
        except WebAuthnException as e:
            return NotVerified(reason=f"authentication_rejected: {e}")

        await self._collection.update_one(
            {"_id": stored.id},
            {"$set": {"sign_count": verification.new_sign_count, "last_used_at": now()}},
        )
        return Verified(user_id=user_id, credential_id=stored.credential_id)
