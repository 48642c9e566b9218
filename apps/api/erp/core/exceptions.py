"""Domain error taxonomy.

Services raise these; erp.main renders them as
``{"error": <kind>, "detail": <message>}`` with the matching status code.
None of them are retried; validation and authorization errors are raised
before any write.
"""


class ErpError(Exception):
    """Base exception for engine errors."""

    kind = "internal_error"
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class UnauthenticatedError(ErpError):
    """No credential, or the credential does not resolve to a usable account."""

    kind = "unauthenticated"
    status_code = 401
    default_message = "Not authenticated"


class InactiveAccountError(UnauthenticatedError):
    """Resolved account is disabled. Indistinguishable from Unauthenticated on the wire."""


class ForbiddenError(ErpError):
    kind = "forbidden"
    status_code = 403
    default_message = "Not authorized for this action"


class NotFoundError(ErpError):
    kind = "not_found"
    status_code = 404
    default_message = "Not found"


class ValidationError(ErpError):
    kind = "validation_error"
    status_code = 422
    default_message = "Invalid request"


class AssigneeNotFoundError(ValidationError):
    kind = "assignee_not_found"
    default_message = "Assignee not found or inactive"


class InvalidAssigneeRoleError(ValidationError):
    kind = "invalid_assignee_role"
    default_message = "Assignee must be an admin, supervisor or operator"


class InvalidTransitionError(ErpError):
    kind = "invalid_transition"
    status_code = 409
    default_message = "Status transition not allowed"


class ConflictError(ErpError):
    kind = "conflict"
    status_code = 409
    default_message = "Conflict"


class InternalError(ErpError):
    pass
