from typing import Any

from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi
from pydantic import BaseModel, Field

from authgate.config import Config
from authgate.web.middleware import is_public_path


def set_custom_openapi(app: FastAPI, config: Config) -> None:
    def custom_openapi() -> dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        openapi_schema = get_openapi(
            title="authgate API",
            version="0.1.0",
            summary="Passkey authentication, device verification and sessions",
            routes=app.routes,
        )

        openapi_schema.setdefault("components", {})["securitySchemes"] = {
            "SessionCookie": {
                "type": "apiKey",
                "in": "cookie",
                "name": config.session_cookie_name,
                "description": "Opaque session id issued after a passkey ceremony",
            },
        }
        openapi_schema["security"] = [{"SessionCookie": []}]

        # Routes the auth guard lets through are documented as public
        for path, path_item in openapi_schema["paths"].items():
            if not is_public_path(path):
                continue
            for operation in path_item.values():
                operation["security"] = []

        app.openapi_schema = openapi_schema
        return app.openapi_schema

    app.openapi = custom_openapi  # type: ignore[method-assign]


class ErrorResponse(BaseModel):
    """Standard error response format."""

    message: str = Field(..., description="Human-readable error message")
    type: str = Field(..., description="Machine-readable error type")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"message": "Unauthorized", "type": "authentication_error"},
                {"message": "Token expired", "type": "invalid_token"},
                {"message": "No credentials found", "type": "no_credentials"},
            ]
        }
    }
