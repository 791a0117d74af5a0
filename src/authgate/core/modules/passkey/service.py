from typing import Any

import structlog

from authgate.core.core import Service
from authgate.core.modules.passkey.models import PasskeyLogin
from authgate.core.modules.session.models import SessionId
from authgate.core.modules.webauthn.models import CeremonyResult, PasskeyCredential, Verified
from authgate.errors import AccessDeniedError, CeremonyError

logger = structlog.get_logger(__name__)


class PasskeyService(Service):
    """Binds WebAuthn ceremonies to per-request relying party config and session issuance.

    Finishing a ceremony with a verified result is the single point where a
    passkey becomes an authenticated session.
    """

    async def start_registration(
        self,
        user_id: str,
        request_url: str,
        user_name: str | None = None,
        user_display_name: str | None = None,
        session_id: SessionId | None = None,
        verification_token: str | None = None,
    ) -> dict[str, Any]:
        """Begin registering a passkey.

        Only an account that has never held a passkey may register one
        without proof. Every other registration needs a session for that user
        or an email-verified device token, which is redeemed here.
        """
        user = await self.core.services.user.get_user(user_id)
        has_passkeys = await self.core.services.webauthn.has_credentials(user.user_id)
        if has_passkeys or user.passkey_registered_at is not None:
            await self._ensure_can_add_device(user.user_id, session_id, verification_token)

        rp = self.core.services.relying_party.resolve(request_url)
        return await self.core.services.webauthn.start_registration(
            user.user_id, rp, user_name or user.email, user_display_name or user.name
        )

    async def finish_registration(
        self, user_id: str, credential: dict[str, Any], request_url: str, device_name: str | None = None
    ) -> PasskeyLogin:
        rp = self.core.services.relying_party.resolve(request_url)
        result = await self.core.services.webauthn.finish_registration(user_id, credential, rp, device_name)
        login = await self._establish_session(result, "registration")
        await self.core.services.user.mark_passkey_registered(login.user_id)
        return login

    async def start_authentication(self, user_id: str, request_url: str) -> dict[str, Any]:
        """Begin a login. Raises NoCredentialsError when the user has no passkeys."""
        rp = self.core.services.relying_party.resolve(request_url)
        return await self.core.services.webauthn.start_authentication(user_id, rp)

    async def finish_authentication(self, user_id: str, credential: dict[str, Any], request_url: str) -> PasskeyLogin:
        rp = self.core.services.relying_party.resolve(request_url)
        result = await self.core.services.webauthn.finish_authentication(user_id, credential, rp)
        return await self._establish_session(result, "authentication")

    async def list_passkeys(self, user_id: str, request_url: str) -> list[PasskeyCredential]:
        rp = self.core.services.relying_party.resolve(request_url)
        return await self.core.services.webauthn.list_credentials(user_id, rp.rp_id)

    async def delete_passkey(self, user_id: str, credential_id: str, request_url: str) -> None:
        rp = self.core.services.relying_party.resolve(request_url)
        await self.core.services.webauthn.delete_credential(user_id, credential_id, rp.rp_id)

    async def _ensure_can_add_device(
        self, user_id: str, session_id: SessionId | None, verification_token: str | None
    ) -> None:
        if await self.core.services.session.get_session(session_id) == user_id:
            return
        if verification_token and await self.core.services.verification.consume_verified(verification_token, user_id):
            return
        raise AccessDeniedError("Device verification required")

    async def _establish_session(self, result: CeremonyResult, ceremony: str) -> PasskeyLogin:
        if not isinstance(result, Verified):
            logger.warning("passkey_ceremony_rejected", ceremony=ceremony, reason=result.reason)
            raise CeremonyError
        session_id = await self.core.services.session.create_session(result.user_id)
        logger.info("passkey_ceremony_verified", ceremony=ceremony, user_id=result.user_id)
        return PasskeyLogin(user_id=result.user_id, session_id=session_id)
