import structlog

from authgate.core.core import Service
from authgate.core.modules.session.models import SessionId, session_key
from authgate.utils import generate_token

logger = structlog.get_logger(__name__)


class SessionService(Service):
    """Opaque server-side sessions stored in Redis.

    The client only ever holds the session id. Expiry is enforced by the
    Redis TTL, so a key either maps to exactly one user id or is absent.
    """

    async def create_session(self, user_id: str) -> SessionId:
        session_id = SessionId(generate_token())
        await self.redis.set(session_key(session_id), user_id, ex=self.config.session_ttl_seconds)
        logger.info("session_created", user_id=user_id)
        return session_id

    async def get_session(self, session_id: SessionId | None) -> str | None:
        """Return the user id bound to a session, or None when absent, expired or revoked."""
        if not session_id:
            return None
        user_id = await self.redis.get(session_key(session_id))
        if user_id is None:
            return None
        return str(user_id)

    async def delete_session(self, session_id: SessionId | None) -> None:
        """Revoke a session. Safe to call with no id or an already deleted id."""
        if not session_id:
            return
        deleted = await self.redis.delete(session_key(session_id))
        logger.debug("session_deleted", existed=bool(deleted))
