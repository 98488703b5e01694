"""Error taxonomy shared by the gateway, the flows and the HTTP layer."""


class CompanionAppError(Exception):
    """Base class for all application errors."""


class AuthenticationRequired(CompanionAppError):
    """No authenticated identity is available for the requested operation."""

    def __init__(self, message: str = "User not authenticated"):
        super().__init__(message)


class GatewayError(CompanionAppError):
    """The hosted backend (database, auth or storage) failed or was unreachable."""


class NotFoundError(CompanionAppError):
    """A requested row does not exist or is not owned by the caller."""


class DuplicateDecisionError(CompanionAppError):
    """The user already decided on this companion."""


class ValidationError(CompanionAppError):
    """Input rejected before any network call."""


class EmptyMessageError(ValidationError):
    def __init__(self, message: str = "Message cannot be empty"):
        super().__init__(message)


class InvalidUploadError(ValidationError):
    """Oversized or wrong-type file upload."""
