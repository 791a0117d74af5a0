from __future__ import annotations

import importlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any, cast
from urllib.parse import urlparse

import structlog
from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase
from redis.asyncio import Redis

from authgate.config import Config

logger = structlog.get_logger(__name__)


class Service:
    """Base class for services with direct database access."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        self.database = database
        self._core: Core | None = None

    async def on_start(self) -> None:
        """Initialize service on application startup."""

    async def on_stop(self) -> None:
        """Cleanup service on application shutdown."""

    @property
    def core(self) -> Core:
        """Get the core application context."""
        if self._core is None:
            raise RuntimeError("Core not set for service")
        return self._core

    @property
    def config(self) -> Config:
        return self.core.config

    @property
    def redis(self) -> Redis:
        return self.core.redis

    def set_core(self, core: Core) -> None:
        """Set the core application context."""
        self._core = core


class Services:
    """Service registry that automatically discovers and initializes services."""

    from authgate.core.modules.access.service import AccessService  # noqa: PLC0415
    from authgate.core.modules.email.service import EmailService  # noqa: PLC0415
    from authgate.core.modules.passkey.service import PasskeyService  # noqa: PLC0415
    from authgate.core.modules.relying_party.service import RelyingPartyService  # noqa: PLC0415
    from authgate.core.modules.session.service import SessionService  # noqa: PLC0415
    from authgate.core.modules.user.service import UserService  # noqa: PLC0415
    from authgate.core.modules.verification.service import DeviceVerificationService  # noqa: PLC0415
    from authgate.core.modules.webauthn.service import WebAuthnService  # noqa: PLC0415

    relying_party: RelyingPartyService
    session: SessionService
    user: UserService
    email: EmailService
    verification: DeviceVerificationService
    webauthn: WebAuthnService
    passkey: PasskeyService
    access: AccessService

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        """Initialize all services automatically using service configuration."""
        self._services: list[Service] = []
        self._database = database

        # Service configuration: (attribute_name, module_path, class_name)
        # Start order follows this list, stop order is reversed
        service_configs = [
            ("relying_party", "authgate.core.modules.relying_party.service", "RelyingPartyService"),
            ("session", "authgate.core.modules.session.service", "SessionService"),
            ("user", "authgate.core.modules.user.service", "UserService"),
            ("email", "authgate.core.modules.email.service", "EmailService"),
            ("verification", "authgate.core.modules.verification.service", "DeviceVerificationService"),
            ("webauthn", "authgate.core.modules.webauthn.service", "WebAuthnService"),
            ("passkey", "authgate.core.modules.passkey.service", "PasskeyService"),
            ("access", "authgate.core.modules.access.service", "AccessService"),
        ]

        for attr_name, module_path, class_name in service_configs:
            module = importlib.import_module(module_path)
            service_class = cast(type[Service], getattr(module, class_name))
            service_instance = service_class(database)
            setattr(self, attr_name, service_instance)
            self._services.append(service_instance)

    def set_core(self, core: Core) -> None:
        """Set core reference for all services."""
        for service in self._services:
            service.set_core(core)

    async def start_all(self) -> None:
        for service in self._services:
            await service.on_start()

    async def stop_all(self) -> None:
        for service in reversed(self._services):
            await service.on_stop()


class Core:
    """Container providing config, store clients, and all service instances.

    Store clients are built from config unless injected. Either way the Core
    owns them: they are checked on start and closed on stop.
    """

    config: Config
    mongo_client: AsyncMongoClient[dict[str, Any]]
    database: AsyncDatabase[dict[str, Any]]
    redis: Redis
    services: Services

    def __init__(
        self,
        config: Config,
        mongo_client: AsyncMongoClient[dict[str, Any]] | None = None,
        redis: Redis | None = None,
    ) -> None:
        self.config = config
        if mongo_client is None:
            mongo_client = AsyncMongoClient(config.database_url, uuidRepresentation="standard", tz_aware=True)
        self.mongo_client = mongo_client
        self.database = self.mongo_client.get_database(urlparse(config.database_url).path[1:])
        if redis is None:
            redis = Redis.from_url(config.redis_url, decode_responses=True)
        self.redis = redis
        self.services = Services(self.database)
        self.services.set_core(self)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Manage application lifecycle - startup and shutdown."""
        await self.on_start()
        try:
            yield
        finally:
            await self.on_stop()

    async def on_start(self) -> None:
        """Verify the Redis connection, then start all services.

        An unreachable store is fatal here rather than on the first request.
        """
        await self.redis.ping()
        await self.services.start_all()
        logger.info("core_started")

    async def on_stop(self) -> None:
        """Stop services, then close the store connections."""
        await self.services.stop_all()
        await self.redis.aclose()
        await self.mongo_client.aclose()
        logger.info("core_stopped")
