from fastapi import APIRouter
from pydantic import BaseModel, Field

from authgate.core.modules.verification.models import DeviceVerificationResult
from authgate.web.deps import AppDep, RequestUrlDep
from authgate.web.openapi import ErrorResponse

router = APIRouter(tags=["device"])


class SendVerificationRequest(BaseModel):
    user_id: str = Field(..., description="User the new device belongs to")
    email: str = Field(..., description="Email address on the account")


class SendVerificationResponse(BaseModel):
    success: bool = True


class CheckVerificationRequest(BaseModel):
    token: str = Field(..., min_length=1, description="Token from the verification link")


@router.post(
    "/device/verify/send",
    summary="Email a device verification link",
    description="Create a single-use token valid for 15 minutes and email it to the account address.",
    operation_id="sendDeviceVerification",
    responses={
        200: {"description": "Verification email sent"},
        404: {"model": ErrorResponse, "description": "User not found"},
        503: {"model": ErrorResponse, "description": "Email service unavailable"},
    },
)
async def send_verification(
    request: SendVerificationRequest, app: AppDep, request_url: RequestUrlDep
) -> SendVerificationResponse:
    await app.send_device_verification(request.user_id, request.email, request_url)
    return SendVerificationResponse()


@router.post(
    "/device/verify/check",
    summary="Consume a device verification token",
    description="Mark the token verified. Expired or reused tokens are deleted and rejected.",
    operation_id="checkDeviceVerification",
    responses={
        200: {"description": "Device verified"},
        400: {"model": ErrorResponse, "description": "Invalid, expired or already used token"},
    },
)
async def check_verification(request: CheckVerificationRequest, app: AppDep) -> DeviceVerificationResult:
    return await app.check_device_verification(request.token)
