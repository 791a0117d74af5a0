from pydantic import BaseModel, Field


class AuthStatus(BaseModel):
    """Whether the current request carries a valid session."""

    authenticated: bool = Field(..., description="True when the session resolves to a user")
    user_id: str | None = Field(None, description="Authenticated user ID")
