from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from authgate.config import Config
from authgate.core.core import Core
from authgate.core.modules.access.models import AuthStatus
from authgate.core.modules.passkey.models import PasskeyLogin
from authgate.core.modules.session.models import SessionId
from authgate.core.modules.user.models import UserView
from authgate.core.modules.verification.models import DeviceVerificationResult
from authgate.core.modules.webauthn.models import PasskeyView


class App:
    """Facade for all application operations, validates access before delegating to Core."""

    def __init__(self, config: Config, core: Core | None = None) -> None:
        self._core = core or Core(config)

    @property
    def config(self) -> Config:
        return self._core.config

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Application lifespan management - delegates to Core."""
        async with self._core.lifespan():
            yield

    # Sessions

    async def verify_auth(self, session_id: SessionId | None) -> AuthStatus:
        """Check the session, degrading store errors to unauthenticated."""
        return await self._core.services.access.verify_auth(session_id)

    async def require_auth(self, session_id: SessionId | None) -> str:
        return await self._core.services.access.require_auth(session_id)

    async def require_matching_user(self, session_id: SessionId | None, user_id: str) -> str:
        return await self._core.services.access.require_matching_user(session_id, user_id)

    async def create_session(self, user_id: str) -> SessionId:
        return await self._core.services.session.create_session(user_id)

    async def delete_session(self, session_id: SessionId | None) -> None:
        await self._core.services.session.delete_session(session_id)

    # Users

    async def register_user(self, email: str, name: str | None = None) -> UserView:
        user = await self._core.services.user.create_user(email, name)
        return UserView.from_domain(user)

    async def find_user(self, email: str) -> UserView:
        user = await self._core.services.user.find_by_email(email)
        return UserView.from_domain(user)

    async def get_current_user(self, session_id: SessionId | None) -> UserView:
        """Get the profile of the authenticated user."""
        user_id = await self.require_auth(session_id)
        user = await self._core.services.user.get_user(user_id)
        return UserView.from_domain(user)

    # Device verification

    async def send_device_verification(self, user_id: str, email: str, request_url: str) -> None:
        origin = self._core.services.relying_party.origin(request_url)
        await self._core.services.verification.send_verification(user_id, email, origin)

    async def check_device_verification(self, token: str) -> DeviceVerificationResult:
        return await self._core.services.verification.check_token(token)

    # Passkeys

    async def start_registration(
        self,
        user_id: str,
        request_url: str,
        session_id: SessionId | None = None,
        user_name: str | None = None,
        user_display_name: str | None = None,
        verification_token: str | None = None,
    ) -> dict[str, Any]:
        return await self._core.services.passkey.start_registration(
            user_id,
            request_url,
            user_name=user_name,
            user_display_name=user_display_name,
            session_id=session_id,
            verification_token=verification_token,
        )

    async def finish_registration(
        self, user_id: str, credential: dict[str, Any], request_url: str, device_name: str | None = None
    ) -> PasskeyLogin:
        return await self._core.services.passkey.finish_registration(user_id, credential, request_url, device_name)

    async def start_authentication(self, user_id: str, request_url: str) -> dict[str, Any]:
        return await self._core.services.passkey.start_authentication(user_id, request_url)

    async def finish_authentication(self, user_id: str, credential: dict[str, Any], request_url: str) -> PasskeyLogin:
        return await self._core.services.passkey.finish_authentication(user_id, credential, request_url)

    async def list_passkeys(self, session_id: SessionId | None, user_id: str, request_url: str) -> list[PasskeyView]:
        """List a user's passkeys for the current relying party (that user only)."""
        await self.require_matching_user(session_id, user_id)
        credentials = await self._core.services.passkey.list_passkeys(user_id, request_url)
        return [PasskeyView.from_domain(c) for c in credentials]

    async def delete_passkey(
        self, session_id: SessionId | None, user_id: str, credential_id: str, request_url: str
    ) -> None:
        """Delete one of a user's passkeys (that user only)."""
        await self.require_matching_user(session_id, user_id)
        await self._core.services.passkey.delete_passkey(user_id, credential_id, request_url)
