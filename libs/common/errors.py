"""Domain error taxonomy.

Every business rule violation is raised as one of these. They subclass
``HTTPException`` so FastAPI renders them directly, and operations can be
called from routers or from other operations without translation.
"""

from fastapi import HTTPException, status


class DomainError(HTTPException):
    """Base class for rejected operations."""

    kind = "domain_error"
    http_status = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str):
        super().__init__(status_code=self.http_status, detail=detail)


class AuthorizationDenied(DomainError):
    """Wrong role, or a non-owner attempting a privileged mutation."""

    kind = "authorization_denied"
    http_status = status.HTTP_403_FORBIDDEN


class ValidationFailed(DomainError):
    """Malformed value, duplicate unique key, or unrecognized enum value."""

    kind = "validation_failed"
    http_status = status.HTTP_400_BAD_REQUEST


class InvalidStateTransition(DomainError):
    """The requested change is not allowed from the record's current state."""

    kind = "invalid_state_transition"
    http_status = status.HTTP_409_CONFLICT


class NotFound(DomainError):
    kind = "not_found"
    http_status = status.HTTP_404_NOT_FOUND


class AlreadyDeleted(DomainError):
    kind = "already_deleted"
    http_status = status.HTTP_410_GONE


class InsufficientFunds(DomainError):
    kind = "insufficient_funds"
    http_status = status.HTTP_400_BAD_REQUEST
