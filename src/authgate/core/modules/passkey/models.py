from pydantic import BaseModel

from authgate.core.modules.session.models import SessionId


class PasskeyLogin(BaseModel):
    """A completed ceremony that has been turned into a session."""

    user_id: str
    session_id: SessionId
