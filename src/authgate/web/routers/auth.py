from fastapi import APIRouter, Response

from authgate.core.modules.access.models import AuthStatus
from authgate.web.cookies import clear_session_cookie
from authgate.web.deps import AppDep, SessionIdDep

router = APIRouter(tags=["auth"])


@router.get(
    "/auth/session",
    summary="Check session",
    description="Report whether the session cookie resolves to a user. Never fails with 401.",
    operation_id="getSession",
    responses={200: {"description": "Session status"}},
)
async def get_session(app: AppDep, session_id: SessionIdDep) -> AuthStatus:
    return await app.verify_auth(session_id)


@router.post(
    "/auth/logout",
    summary="End session",
    description="Revoke the current session and clear the session cookie. Safe to call without a session.",
    operation_id="logout",
    status_code=204,
    responses={204: {"description": "Successfully logged out"}},
)
async def logout(app: AppDep, session_id: SessionIdDep, response: Response) -> None:
    await app.delete_session(session_id)
    clear_session_cookie(response, app.config)
