import asyncio
from datetime import timedelta
from typing import Any

import structlog
from pymongo import ReturnDocument
from pymongo.asynchronous.database import AsyncDatabase

from authgate.core.core import Service
from authgate.core.modules.email.service import EmailDeliveryError
from authgate.core.modules.email.templates import build_verify_device_url, render_device_verification_email
from authgate.core.modules.user.service import normalize_email
from authgate.core.modules.verification.models import DeviceVerification, DeviceVerificationResult
from authgate.errors import InvalidTokenError, NotFoundError, ServiceUnavailableError
from authgate.utils import as_utc, generate_token, now

logger = structlog.get_logger(__name__)


class DeviceVerificationService(Service):
    """Email-confirmed, single-use tokens that gate passkey registration on a new device."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("device_verifications")
        self._cleanup_tasks: set[asyncio.Task[None]] = set()

    async def on_start(self) -> None:
        await self._collection.create_index([("token", 1)], unique=True)
        await self._collection.create_index([("expires_at", 1)])
        logger.debug("verification_service_started")

    async def on_stop(self) -> None:
        """Cancel pending cleanup sweeps."""
        tasks = list(self._cleanup_tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._cleanup_tasks.clear()

    async def create_verification(self, user_id: str, email: str) -> DeviceVerification:
        verification = DeviceVerification(
            token=generate_token(),
            user_id=user_id,
            email=email,
            expires_at=now() + timedelta(seconds=self.config.verification_ttl_seconds),
        )
        await self._collection.insert_one(verification.to_mongo())
        return verification

    async def send_verification(self, user_id: str, email: str, origin: str) -> DeviceVerification:
        """Persist a token for the user and email it as a verification link.

        A provider failure leaves the record in place and raises
        ServiceUnavailableError so the client can ask for a fresh send.
        """
        user = await self.core.services.user.get_user(user_id)
        if user.email != normalize_email(email):
            raise NotFoundError("User not found")

        verification = await self.create_verification(user.user_id, user.email)
        verify_url = build_verify_device_url(origin, verification.token, user.email)
        subject, html_body = render_device_verification_email(
            self.config.app_name, verify_url, self.config.verification_ttl_seconds // 60
        )
        try:
            await self.core.services.email.send_email(user.email, subject, html_body)
        except EmailDeliveryError as e:
            logger.warning("device_verification_email_failed", user_id=user_id, error=str(e))
            raise ServiceUnavailableError("Email service unavailable. Please contact support.") from e

        logger.info("device_verification_sent", user_id=user_id)
        return verification

    async def check_token(self, token: str) -> DeviceVerificationResult:
        """Consume a token, marking it verified exactly once.

        The claim is a single conditional update, so two concurrent checks of
        the same token cannot both succeed. A token that cannot be claimed is
        deleted before the rejection is raised.
        """
        current = now()
        claimed = await self._collection.find_one_and_update(
            {"token": token, "verified": False, "expires_at": {"$gt": current}},
            {"$set": {"verified": True, "verified_at": current}},
            return_document=ReturnDocument.AFTER,
        )
        if claimed is not None:
            verification = DeviceVerification.model_validate(claimed)
            self._schedule_cleanup()
            logger.info("device_verified", user_id=verification.user_id)
            return DeviceVerificationResult(user_id=verification.user_id)

        verification = DeviceVerification.from_mongo(await self._collection.find_one({"token": token}))
        if verification is None:
            raise InvalidTokenError("Invalid token")

        await self._collection.delete_one({"token": token})
        if as_utc(verification.expires_at) <= current:
            logger.info("device_verification_expired", user_id=verification.user_id)
            raise InvalidTokenError("Token expired")
        logger.info("device_verification_reused", user_id=verification.user_id)
        raise InvalidTokenError("Token already used")

    async def consume_verified(self, token: str, user_id: str) -> bool:
        """Redeem a verified, unexpired token for this user.

        The record is removed in the same operation, so one email link
        authorizes exactly one new device.
        """
        redeemed = await self._collection.find_one_and_delete(
            {"token": token, "user_id": user_id, "verified": True, "expires_at": {"$gt": now()}}
        )
        if redeemed is None:
            return False
        logger.info("device_verification_redeemed", user_id=user_id)
        return True

    async def cleanup_tokens(self) -> int:
        """Delete expired tokens and tokens verified more than the grace window ago."""
        current = now()
        cutoff = current - timedelta(seconds=self.config.verification_cleanup_delay_seconds)
        result = await self._collection.delete_many(
            {
                "$or": [
                    {"expires_at": {"$lt": current}},
                    {"verified": True, "verified_at": {"$lt": cutoff}},
                ]
            }
        )
        return result.deleted_count

    def _schedule_cleanup(self) -> None:
        task = asyncio.create_task(self._cleanup_later(self.config.verification_cleanup_delay_seconds))
        self._cleanup_tasks.add(task)
        task.add_done_callback(self._cleanup_tasks.discard)

    async def _cleanup_later(self, delay: float) -> None:
        await asyncio.sleep(delay)
        try:
            deleted = await self.cleanup_tokens()
        except Exception as e:
            logger.exception("device_verification_cleanup_failed", error=str(e))
        else:
            logger.debug("device_verification_cleanup", deleted=deleted)
