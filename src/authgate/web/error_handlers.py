import logging

from fastapi import Request
from fastapi.responses import JSONResponse, Response

from authgate.config import Config
from authgate.errors import (
    AccessDeniedError,
    AuthenticationError,
    CeremonyError,
    InvalidTokenError,
    NoCredentialsError,
    NotFoundError,
    ServiceUnavailableError,
    ValidationError,
)
from authgate.web.cookies import clear_session_cookie

logger = logging.getLogger(__name__)

# Most specific first
_ERROR_STATUS: list[tuple[type[Exception], int, str]] = [
    (AuthenticationError, 401, "authentication_error"),
    (AccessDeniedError, 403, "access_denied"),
    (NoCredentialsError, 404, "no_credentials"),
    (NotFoundError, 404, "not_found"),
    (InvalidTokenError, 400, "invalid_token"),
    (CeremonyError, 400, "ceremony_failed"),
    (ValidationError, 400, "validation_error"),
    (ServiceUnavailableError, 503, "service_unavailable"),
]


def create_json_error_response(status_code: int, message: str, error_type: str | None = None) -> JSONResponse:
    """Create JSON error response with optional type for machine parsing."""
    content = {"message": message}
    if error_type:
        content["type"] = error_type
    return JSONResponse(status_code=status_code, content=content)


async def user_error_handler(request: Request, exc: Exception) -> Response:
    """Handle all UserError subclasses with appropriate status codes."""
    status_code, error_type = 400, "bad_request"
    for error_class, code, name in _ERROR_STATUS:
        if isinstance(exc, error_class):
            status_code, error_type = code, name
            break

    response = create_json_error_response(status_code=status_code, message=str(exc), error_type=error_type)
    if status_code == 401:
        # Every 401 clears the session cookie
        config: Config = request.app.state.config
        clear_session_cookie(response, config)
    return response


async def general_exception_handler(_: Request, exc: Exception) -> Response:
    """Handle unexpected errors (500)."""
    logger.exception("Unexpected error: %s", exc)
    return create_json_error_response(
        status_code=500, message="An unexpected error occurred.", error_type="internal_server_error"
    )
