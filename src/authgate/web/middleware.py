"""Auth guard: every route outside the allow-list needs a valid session."""

from urllib.parse import urlencode

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response

from authgate.app import App
from authgate.core.modules.session.models import SessionId
from authgate.web.cookies import clear_session_cookie
from authgate.web.error_handlers import create_json_error_response

LOGIN_PATH = "/login"

PUBLIC_PREFIXES: tuple[str, ...] = (
    # Static assets
    "/_next",
    "/static",
    "/favicon.ico",
    "/icon-",
    "/apple-icon",
    "/manifest.webmanifest",
    # Pages that establish identity
    "/login",
    "/register",
    "/verify-device",
    # Auth API routes
    "/api/v1/auth",
    "/api/v1/passkey",
    "/api/v1/device",
    "/api/v1/users",
    # Service endpoints
    "/health",
    "/docs",
    "/redoc",
    "/openapi.json",
)


def is_public_path(path: str) -> bool:
    return path.startswith(PUBLIC_PREFIXES)


def is_api_path(path: str) -> bool:
    return path.startswith("/api/")


class AuthGuardMiddleware(BaseHTTPMiddleware):
    """Reject or redirect requests without a valid session.

    API calls get a 401 JSON body and a cleared cookie, browser navigation is
    redirected to the login page with the requested path preserved.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        if is_public_path(path):
            return await call_next(request)

        app: App = request.app.state.app
        cookie = request.cookies.get(app.config.session_cookie_name)
        status = await app.verify_auth(SessionId(cookie) if cookie else None)
        if status.authenticated:
            request.state.user_id = status.user_id
            return await call_next(request)

        if is_api_path(path):
            response: Response = create_json_error_response(401, "Unauthorized", "authentication_error")
        else:
            response = RedirectResponse(f"{LOGIN_PATH}?{urlencode({'redirect': path})}", status_code=307)
        if cookie:
            clear_session_cookie(response, app.config)
        return response
