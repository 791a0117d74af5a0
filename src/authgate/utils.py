import secrets
from datetime import UTC, datetime


def now() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes read back from MongoDB."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def generate_token() -> str:
    """Generate a URL-safe random token with 256 bits of entropy."""
    return secrets.token_urlsafe(32)
