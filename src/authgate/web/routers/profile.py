from fastapi import APIRouter

from authgate.core.modules.user.models import UserView
from authgate.web.deps import AppDep, SessionIdDep
from authgate.web.openapi import ErrorResponse

router = APIRouter(tags=["profile"])


@router.get(
    "/profile",
    summary="Get current user profile",
    description="Get the profile of the currently authenticated user.",
    operation_id="getCurrentUserProfile",
    responses={
        200: {"description": "Current user profile"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def get_profile(app: AppDep, session_id: SessionIdDep) -> UserView:
    return await app.get_current_user(session_id)
