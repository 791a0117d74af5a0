from abc import ABC


class UserError(ABC, Exception):
    """Base class for user-related errors.

    All errors that inherit from UserError will have their messages
    displayed to the user. These errors should not contain any
    sensitive information.
    """


class NotFoundError(UserError):
    """Raised when a requested resource is not found."""

    def __init__(self, message: str = "Document not found") -> None:
        super().__init__(message)


class NoCredentialsError(NotFoundError):
    """Raised when a user has no registered passkeys.

    Callers branch into the device verification flow instead of treating
    this as a failed login.
    """

    def __init__(self, message: str = "No credentials found") -> None:
        super().__init__(message)


class AuthenticationError(UserError):
    """Raised when authentication fails."""

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message)


class AccessDeniedError(UserError):
    """Raised when a user tries to access a resource they do not have permission for."""


class ValidationError(UserError):
    """Raised when user input fails validation."""


class InvalidTokenError(ValidationError):
    """Raised when a device verification token is unknown, expired or already used.

    The offending record has already been deleted when this is raised, so the
    same token can never succeed later.
    """

    def __init__(self, message: str = "Invalid token") -> None:
        super().__init__(message)


class CeremonyError(ValidationError):
    """Raised when a WebAuthn ceremony is rejected.

    The message is deliberately generic; the reason is only logged.
    """

    def __init__(self, message: str = "Verification failed") -> None:
        super().__init__(message)


class ServiceUnavailableError(UserError):
    """Raised when an external dependency (email provider, store) is unavailable."""

    def __init__(self, message: str = "Service unavailable") -> None:
        super().__init__(message)
