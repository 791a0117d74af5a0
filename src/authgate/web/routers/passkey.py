from typing import Any

from fastapi import APIRouter, Response
from pydantic import BaseModel, Field

from authgate.core.modules.webauthn.models import PasskeyView
from authgate.web.cookies import set_session_cookie
from authgate.web.deps import AppDep, RequestUrlDep, SessionIdDep
from authgate.web.openapi import ErrorResponse

router = APIRouter(tags=["passkey"])


class StartRegistrationRequest(BaseModel):
    user_id: str = Field(..., description="User to register a passkey for")
    user_name: str | None = Field(None, description="Account name shown by the authenticator, defaults to email")
    user_display_name: str | None = Field(None, description="Display name shown by the authenticator")
    verification_token: str | None = Field(None, description="Verified device token, required for additional devices")


class FinishRegistrationRequest(BaseModel):
    user_id: str
    credential: dict[str, Any] = Field(..., description="RegistrationResponseJSON from the browser")
    device_name: str | None = Field(None, max_length=100, description="Name to remember the authenticator by")


class StartAuthenticationRequest(BaseModel):
    user_id: str


class FinishAuthenticationRequest(BaseModel):
    user_id: str
    credential: dict[str, Any] = Field(..., description="AuthenticationResponseJSON from the browser")


class CeremonyResponse(BaseModel):
    verified: bool = True
    user_id: str


class ListPasskeysRequest(BaseModel):
    user_id: str


class ListPasskeysResponse(BaseModel):
    passkeys: list[PasskeyView]


class DeletePasskeyRequest(BaseModel):
    user_id: str
    credential_id: str


class DeletePasskeyResponse(BaseModel):
    success: bool = True


@router.post(
    "/passkey/register/start",
    summary="Begin passkey registration",
    operation_id="startPasskeyRegistration",
    responses={
        200: {"description": "PublicKeyCredentialCreationOptions"},
        403: {"model": ErrorResponse, "description": "Additional device without verification"},
        404: {"model": ErrorResponse, "description": "User not found"},
    },
)
async def start_registration(
    request: StartRegistrationRequest, app: AppDep, session_id: SessionIdDep, request_url: RequestUrlDep
) -> dict[str, Any]:
    return await app.start_registration(
        request.user_id,
        request_url,
        session_id=session_id,
        user_name=request.user_name,
        user_display_name=request.user_display_name,
        verification_token=request.verification_token,
    )


@router.post(
    "/passkey/register/finish",
    summary="Complete passkey registration",
    description="Verify the attestation, store the passkey and start a session.",
    operation_id="finishPasskeyRegistration",
    responses={
        200: {"description": "Passkey registered, session cookie set"},
        400: {"model": ErrorResponse, "description": "Verification failed"},
    },
)
async def finish_registration(
    request: FinishRegistrationRequest, app: AppDep, request_url: RequestUrlDep, response: Response
) -> CeremonyResponse:
    login = await app.finish_registration(request.user_id, request.credential, request_url, request.device_name)
    set_session_cookie(response, app.config, login.session_id)
    return CeremonyResponse(user_id=login.user_id)


@router.post(
    "/passkey/authenticate/start",
    summary="Begin passkey login",
    operation_id="startPasskeyAuthentication",
    responses={
        200: {"description": "PublicKeyCredentialRequestOptions"},
        404: {"model": ErrorResponse, "description": "No passkeys, start device verification"},
    },
)
async def start_authentication(
    request: StartAuthenticationRequest, app: AppDep, request_url: RequestUrlDep
) -> dict[str, Any]:
    return await app.start_authentication(request.user_id, request_url)


@router.post(
    "/passkey/authenticate/finish",
    summary="Complete passkey login",
    description="Verify the assertion and start a session.",
    operation_id="finishPasskeyAuthentication",
    responses={
        200: {"description": "Authenticated, session cookie set"},
        400: {"model": ErrorResponse, "description": "Verification failed"},
    },
)
async def finish_authentication(
    request: FinishAuthenticationRequest, app: AppDep, request_url: RequestUrlDep, response: Response
) -> CeremonyResponse:
    login = await app.finish_authentication(request.user_id, request.credential, request_url)
    set_session_cookie(response, app.config, login.session_id)
    return CeremonyResponse(user_id=login.user_id)


@router.post(
    "/passkey/list",
    summary="List passkeys",
    operation_id="listPasskeys",
    responses={
        200: {"description": "Registered passkeys"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Session belongs to another user"},
    },
)
async def list_passkeys(
    request: ListPasskeysRequest, app: AppDep, session_id: SessionIdDep, request_url: RequestUrlDep
) -> ListPasskeysResponse:
    passkeys = await app.list_passkeys(session_id, request.user_id, request_url)
    return ListPasskeysResponse(passkeys=passkeys)


@router.post(
    "/passkey/delete",
    summary="Delete a passkey",
    operation_id="deletePasskey",
    responses={
        200: {"description": "Passkey deleted"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Session belongs to another user"},
        404: {"model": ErrorResponse, "description": "Passkey not found"},
    },
)
async def delete_passkey(
    request: DeletePasskeyRequest, app: AppDep, session_id: SessionIdDep, request_url: RequestUrlDep
) -> DeletePasskeyResponse:
    await app.delete_passkey(session_id, request.user_id, request.credential_id, request_url)
    return DeletePasskeyResponse()
