from typing import Annotated, cast

from fastapi import Depends, Request

from authgate.app import App
from authgate.core.modules.session.models import SessionId


async def get_app(request: Request) -> App:
    return cast(App, request.app.state.app)


async def get_session_id(request: Request, app: Annotated[App, Depends(get_app)]) -> SessionId | None:
    """Session id from the session cookie, if the client sent one."""
    value = request.cookies.get(app.config.session_cookie_name)
    return SessionId(value) if value else None


async def get_request_url(request: Request) -> str:
    """Full URL of the incoming request, used to derive the relying party."""
    return str(request.url)


# Type aliases for dependencies
AppDep = Annotated[App, Depends(get_app)]
SessionIdDep = Annotated[SessionId | None, Depends(get_session_id)]
RequestUrlDep = Annotated[str, Depends(get_request_url)]
