from starlette.responses import Response

from authgate.config import Config
from authgate.core.modules.session.models import SessionId


def set_session_cookie(response: Response, config: Config, session_id: SessionId) -> None:
    """Write the opaque session id as an HttpOnly cookie.

    max_age matches the Redis TTL so the cookie and the session expire together.
    """
    response.set_cookie(
        key=config.session_cookie_name,
        value=session_id,
        max_age=config.session_ttl_seconds,
        path="/",
        httponly=True,
        samesite="lax",
        secure=config.production,
    )


def clear_session_cookie(response: Response, config: Config) -> None:
    response.delete_cookie(
        key=config.session_cookie_name,
        path="/",
        httponly=True,
        samesite="lax",
        secure=config.production,
    )
