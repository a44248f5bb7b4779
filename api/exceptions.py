"""Exception classes raised by TeamSync services and routes.

Every exception inherits from TeamSyncException and carries:
- message: human-readable text shown to the client
- error_code: machine-readable code (e.g. "NOT_A_MEMBER")
- details: optional dictionary with additional context

The handlers in api.error_handlers turn them into
{"message": ..., "errorCode": ...[, "details": ...]} bodies.
"""

from typing import Any, Optional


class TeamSyncException(Exception):
    """Base exception for all TeamSync API errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code for client handling
        details: Optional dictionary with additional error context
        status_code: HTTP status code (set by subclasses)
    """

    status_code: int = 500
    default_error_code: str = "INTERNAL_ERROR"
    default_message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message or self.default_message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to the JSON error body."""
        result: dict[str, Any] = {
            "message": self.message,
            "errorCode": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# HTTP categories
# =============================================================================


class ValidationError(TeamSyncException):
    """Request data failed validation (HTTP 400)."""

    status_code = 400
    default_error_code = "VALIDATION_ERROR"
    default_message = "Validation failed"


class BadRequestError(TeamSyncException):
    """Request is well-formed but not allowed in the current state (HTTP 400).

    Used for business-rule refusals such as removing the owner or
    redeeming an expired invite code.
    """

    status_code = 400
    default_error_code = "BAD_REQUEST"
    default_message = "Bad request"


class AuthenticationError(TeamSyncException):
    """Credentials missing, invalid or expired (HTTP 401)."""

    status_code = 401
    default_error_code = "AUTHENTICATION_FAILED"
    default_message = "Authentication required"


class AuthorizationError(TeamSyncException):
    """Authenticated but not allowed (HTTP 403)."""

    status_code = 403
    default_error_code = "FORBIDDEN"
    default_message = "Permission denied"


class NotFoundError(TeamSyncException):
    """Resource does not exist (HTTP 404)."""

    status_code = 404
    default_error_code = "NOT_FOUND"
    default_message = "Resource not found"


class ConflictError(TeamSyncException):
    """Request conflicts with current state (HTTP 409)."""

    status_code = 409
    default_error_code = "CONFLICT"
    default_message = "Resource conflict"


class InternalError(TeamSyncException):
    """Server-side inconsistency (HTTP 500)."""


# =============================================================================
# Workspace domain errors
# =============================================================================


class NotAMemberError(NotFoundError):
    """The user has no membership in the workspace."""

    default_error_code = "NOT_A_MEMBER"
    default_message = "You are not a member of this workspace"


class InsufficientRoleError(AuthorizationError):
    """The acting role may not perform the action on the target."""

    default_error_code = "INSUFFICIENT_ROLE"
    default_message = "You do not have sufficient role to perform this action"


class RoleNotFoundError(InternalError):
    """A role row expected from seeding is missing."""

    default_error_code = "ROLE_NOT_FOUND"
    default_message = "Role not found"


class TransferVerificationError(ConflictError):
    """Ownership transfer did not leave the workspace in the expected state."""

    default_error_code = "TRANSFER_VERIFICATION_FAILED"
    default_message = "Ownership transfer verification failed"
