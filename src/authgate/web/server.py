from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from authgate.app import App
from authgate.config import Config
from authgate.errors import UserError
from authgate.web.error_handlers import general_exception_handler, user_error_handler
from authgate.web.middleware import AuthGuardMiddleware
from authgate.web.openapi import set_custom_openapi
from authgate.web.routers import auth_router, device_router, passkey_router, profile_router, users_router


def create_fastapi_app(app_instance: App, config: Config) -> FastAPI:
    """Create and configure FastAPI application."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
        """FastAPI application lifespan management."""
        async with app_instance.lifespan():
            yield

    app = FastAPI(
        title="authgate API",
        lifespan=lifespan,
        docs_url="/docs" if config.debug else None,
        redoc_url="/redoc" if config.debug else None,
    )
    # Set before startup so middleware and handlers can rely on it
    app.state.app = app_instance
    app.state.config = config

    # Last added runs first: CORS wraps the auth guard
    app.add_middleware(AuthGuardMiddleware)
    if config.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # Health check endpoint (at root level, not versioned)
    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy"}

    # API v1 routes
    app.include_router(auth_router, prefix="/api/v1")
    app.include_router(users_router, prefix="/api/v1")
    app.include_router(device_router, prefix="/api/v1")
    app.include_router(passkey_router, prefix="/api/v1")
    app.include_router(profile_router, prefix="/api/v1")

    # Register error handlers
    app.add_exception_handler(UserError, user_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    set_custom_openapi(app, config)

    return app
