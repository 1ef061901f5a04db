"""Error types shared by the authentication layer and the HTTP routes.

Validation and authentication failures are expected control flow and map to
4xx responses. Storage failures are infrastructure faults that end the request
with a generic 500.
"""


class StudentScopeError(Exception):
    """Base class for all application errors."""

    status_code = 500
    public_message = "Internal server error"


class InvalidInputError(StudentScopeError):
    """Malformed or missing input."""

    status_code = 400

    def __init__(self, message: str = "Invalid input"):
        super().__init__(message)
        self.public_message = message


class AuthenticationError(StudentScopeError):
    """The request carries no usable session."""

    status_code = 401
    public_message = "Unauthorized"


class NoSessionError(AuthenticationError):
    """No session token was sent."""


class InvalidSessionError(AuthenticationError):
    """The session token is unknown or expired."""


class ForbiddenError(StudentScopeError):
    """Authenticated, but the role is not allowed here."""

    status_code = 403
    public_message = "Forbidden"


class StorageError(StudentScopeError):
    """The backing database failed."""


class SessionCreationError(StorageError):
    """A new session could not be persisted."""
