"""Exception classes for the user management system.

Services raise these for expected business conditions. The HTTP layer maps
them to responses through ``status_code``.
"""

from fastapi import HTTPException, status


class UserAdminError(Exception):
    """Base exception for the user management system."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class AuthenticationError(UserAdminError):
    """Raised when authentication fails."""
    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenError(UserAdminError):
    """Raised when the actor lacks the required role or team scope."""
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(UserAdminError):
    """Raised when a user, team, role or request is missing."""
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(UserAdminError):
    """Raised on duplicates and on transitions that collide with current state."""
    status_code = status.HTTP_409_CONFLICT


class InvalidStateError(UserAdminError):
    """Raised when the target's current role is ineligible for a transition."""
    status_code = status.HTTP_400_BAD_REQUEST


class ValidationError(UserAdminError):
    """Raised when input validation fails."""
    status_code = status.HTTP_400_BAD_REQUEST


class PersistenceError(UserAdminError):
    """Raised when the database fails unexpectedly."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


# HTTP exception shortcuts
def forbidden(detail: str = "Insufficient permissions") -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


def unauthorized(detail: str = "Not authenticated") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )
