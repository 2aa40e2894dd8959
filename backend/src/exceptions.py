"""Application exception hierarchy."""

from typing import Any, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError


class BaseAPIException(Exception):
    """Base exception carrying an error code, HTTP status and details."""

    def __init__(
        self,
        message: str,
        error_code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details


class ReportValidationError(BaseAPIException):
    """Required identifiers or business fields missing before a save."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_code="REPORT_VALIDATION_ERROR",
            status_code=422,
            details=details,
        )


class LoadAbortedError(BaseAPIException):
    """A load cycle was superseded by a newer one. Never shown to users."""

    def __init__(self, key: Any = None):
        super().__init__(
            message="Report load superseded",
            error_code="LOAD_ABORTED",
            status_code=499,
            details={"key": str(key)} if key is not None else None,
        )


class ConstraintViolationError(BaseAPIException):
    """Backend uniqueness constraint rejected a write."""

    def __init__(self, message: str = "This record already exists", detail: str = ""):
        super().__init__(
            message=message,
            error_code="CONSTRAINT_VIOLATION",
            status_code=409,
            details={"detail": detail} if detail else None,
        )
        self.detail = detail


class UnknownPersistenceError(BaseAPIException):
    """Any other storage failure. Carries the raw technical detail."""

    def __init__(self, message: str = "Failed to save report", detail: str = ""):
        super().__init__(
            message=message,
            error_code="PERSISTENCE_ERROR",
            status_code=500,
            details={"detail": detail} if detail else None,
        )
        self.detail = detail


class ResourceNotFoundError(BaseAPIException):
    """Requested resource does not exist."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(
            message=f"{resource} not found: {identifier}",
            error_code="RESOURCE_NOT_FOUND",
            status_code=404,
            details={"resource": resource, "identifier": identifier},
        )


def is_unique_violation(exc: BaseException) -> bool:
    """Return True when a storage error is a uniqueness violation."""
    if not isinstance(exc, IntegrityError):
        return False
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code == "23505":
        return True
    text = str(exc).lower()
    return "duplicate" in text or "unique constraint" in text


def classify_storage_error(exc: Exception, message: str = "Failed to save report") -> BaseAPIException:
    """Translate a storage exception into the report error taxonomy."""
    if isinstance(exc, BaseAPIException):
        return exc
    if is_unique_violation(exc):
        return ConstraintViolationError(detail=str(exc))
    if isinstance(exc, SQLAlchemyError):
        return UnknownPersistenceError(message=message, detail=str(exc))
    return UnknownPersistenceError(message=message, detail=str(exc) or type(exc).__name__)
