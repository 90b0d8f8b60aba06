"""API error types.

Raised from services and blueprints; create_app() registers a handler that
renders every ApiError as ``{"success": false, "error": ..., "code": ...}``
with the matching HTTP status.
"""


class ApiError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message, code=None, details=None, status_code=None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.details = details

    def to_dict(self):
        body = {"success": False, "error": self.message, "code": self.code}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(ApiError):
    status_code = 400
    code = "VALIDATION_ERROR"


class AuthError(ApiError):
    status_code = 401
    code = "AUTH_FAILED"


class ForbiddenError(ApiError):
    status_code = 403
    code = "FORBIDDEN"


class NotFoundError(ApiError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(ApiError):
    status_code = 409
    code = "CONFLICT"


class DeployInProgressError(ConflictError):
    code = "DEPLOY_IN_PROGRESS"


class InvalidTransitionError(ConflictError):
    code = "INVALID_STATUS_TRANSITION"


class DeployFailedError(ApiError):
    status_code = 500
    code = "DEPLOY_FAILED"
