"""Application error taxonomy.

Every domain failure is an ``AppException`` carrying the HTTP status it maps
to; ``app.middleware.error_handler`` renders them as RFC 7807 problem details.
"""


class AppException(Exception):
    status_code: int = 400
    error_type: str = "about:blank"
    title: str = "Error"

    def __init__(self, detail: str, status_code: int | None = None, error_type: str | None = None):
        super().__init__(detail)
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code
        if error_type is not None:
            self.error_type = error_type


class NotFoundError(AppException):
    """No matching row, or no row the actor is permitted to see."""
    status_code = 404
    error_type = "not-found"
    title = "Not Found"


class PermissionDeniedError(AppException):
    status_code = 403
    error_type = "permission-denied"
    title = "Forbidden"


class ConflictError(AppException):
    """A conditional write matched zero rows because the record's state changed."""
    status_code = 409
    error_type = "conflict"
    title = "Conflict"


class DuplicateError(AppException):
    status_code = 409
    error_type = "duplicate"
    title = "Duplicate"


class ForeignKeyViolationError(AppException):
    status_code = 409
    error_type = "foreign-key-violation"
    title = "Foreign Key Violation"


class TransientNetworkError(AppException):
    status_code = 503
    error_type = "transient-network"
    title = "Service Unavailable"


class ValidationError(AppException):
    status_code = 422
    error_type = "validation-error"
    title = "Validation Error"

    def __init__(self, detail: str, errors: list[str] | None = None):
        super().__init__(detail)
        self.errors = errors or []


class PaletteValidationError(ValidationError):
    error_type = "invalid-palette"


class PasswordPolicyError(ValidationError):
    error_type = "weak-password"


class FileValidationError(ValidationError):
    error_type = "invalid-file"


class AuthenticationError(AppException):
    """Missing, expired or revoked credentials."""
    status_code = 401
    error_type = "unauthorized"
    title = "Unauthorized"
