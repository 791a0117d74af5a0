from fastapi import APIRouter
from pydantic import BaseModel, Field

from authgate.core.modules.user.models import UserView
from authgate.web.deps import AppDep
from authgate.web.openapi import ErrorResponse

router = APIRouter(tags=["users"])


class RegisterUserRequest(BaseModel):
    """Request to create an account before registering its first passkey."""

    email: str = Field(..., min_length=3, max_length=320, description="Email address")
    name: str | None = Field(None, max_length=200, description="Display name")


class FindUserRequest(BaseModel):
    email: str = Field(..., min_length=1, description="Email address")


@router.post(
    "/users/register",
    summary="Create account",
    operation_id="registerUser",
    status_code=201,
    responses={
        201: {"description": "Account created"},
        400: {"model": ErrorResponse, "description": "Invalid or already registered email"},
    },
)
async def register_user(request: RegisterUserRequest, app: AppDep) -> UserView:
    return await app.register_user(request.email, request.name)


@router.post(
    "/users/find",
    summary="Find account by email",
    description="Resolve an email to a user ID before starting a passkey login.",
    operation_id="findUser",
    responses={
        200: {"description": "User found"},
        404: {"model": ErrorResponse, "description": "User not found"},
    },
)
async def find_user(request: FindUserRequest, app: AppDep) -> UserView:
    return await app.find_user(request.email)
