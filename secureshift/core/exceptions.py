"""Custom exception classes for SecureShift.

Every rejection raised by the permission resolver or the shift lifecycle is
one of these. The API layer renders them with ``status_code``.
"""

from fastapi import status


class SecureShiftError(Exception):
    """Base exception for SecureShift."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    kind: str = "error"

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class NotFoundError(SecureShiftError):
    """Raised when a referenced shift, role or user does not exist."""
    status_code = status.HTTP_404_NOT_FOUND
    kind = "not_found"


class UnauthenticatedError(SecureShiftError):
    """Raised when no actor identity was supplied."""
    status_code = status.HTTP_401_UNAUTHORIZED
    kind = "unauthenticated"


class ForbiddenError(SecureShiftError):
    """Raised when the actor lacks the role, permission, ownership or scope."""
    status_code = status.HTTP_403_FORBIDDEN
    kind = "forbidden"


class InvalidStateError(SecureShiftError):
    """Raised when a transition is attempted from a state that forbids it."""
    status_code = status.HTTP_409_CONFLICT
    kind = "invalid_state"


class InvalidInputError(SecureShiftError):
    """Raised when input validation fails."""
    status_code = status.HTTP_400_BAD_REQUEST
    kind = "invalid_input"


class ConflictError(SecureShiftError):
    """Raised on duplicate applications, ratings or records."""
    status_code = status.HTTP_409_CONFLICT
    kind = "conflict"
