import structlog
from redis.exceptions import RedisError

from authgate.core.core import Service
from authgate.core.modules.access.models import AuthStatus
from authgate.core.modules.session.models import SessionId
from authgate.errors import AccessDeniedError, AuthenticationError

logger = structlog.get_logger(__name__)


class AccessService(Service):
    async def verify_auth(self, session_id: SessionId | None) -> AuthStatus:
        """Resolve a session without raising.

        A store outage reads as "not authenticated" so callers answer with a
        clean 401 instead of a 500.
        """
        try:
            user_id = await self.core.services.session.get_session(session_id)
        except (RedisError, OSError) as e:
            logger.warning("session_lookup_failed", error=str(e))
            return AuthStatus(authenticated=False)
        if user_id is None:
            return AuthStatus(authenticated=False)
        return AuthStatus(authenticated=True, user_id=user_id)

    async def require_auth(self, session_id: SessionId | None) -> str:
        """Return the session's user id, raise AuthenticationError if there is none."""
        user_id = await self.core.services.session.get_session(session_id)
        if user_id is None:
            raise AuthenticationError("Unauthorized")
        return user_id

    async def require_matching_user(self, session_id: SessionId | None, user_id: str) -> str:
        """Ensure the session belongs to `user_id`, raise AccessDeniedError otherwise."""
        current_user_id = await self.require_auth(session_id)
        if current_user_id != user_id:
            raise AccessDeniedError("Forbidden")
        return current_user_id
