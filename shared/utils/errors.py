import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, SQLAlchemyError

from shared.utils.app_status_code import AppStatusCode

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"
INSUFFICIENT_PRIVILEGE = "42501"
RLS_POLICY_VIOLATION = "42P17"


class AppError(Exception):
    """Base workflow error. Carries the HTTP status the API layer renders."""

    code = AppStatusCode.OPERATION_FAILED
    http_status = 500

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}


class ValidationError(AppError):
    code = AppStatusCode.INVALID_INPUT
    http_status = 400

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        super().__init__(message, {"field": field, "value": value})
        self.field = field


class AuthorizationError(AppError):
    code = AppStatusCode.ACCESS_FORBIDDEN
    http_status = 403

    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(message)


class NotFoundError(AppError):
    code = AppStatusCode.NOT_FOUND
    http_status = 404

    def __init__(self, resource: str):
        super().__init__(f"{resource} not found", {"resource": resource})
        self.resource = resource


class ConflictError(AppError):
    code = AppStatusCode.CONFLICT
    http_status = 409

    def __init__(self, message: str, conflict_field: Optional[str] = None):
        super().__init__(message, {"conflict_field": conflict_field})
        self.conflict_field = conflict_field


class StoreError(AppError):
    code = AppStatusCode.DATABASE_ERROR
    http_status = 500

    def __init__(self, message: str, cause: Optional[BaseException] = None, transient: bool = False):
        super().__init__(message, {"cause": str(cause) if cause else None})
        self.cause = cause
        self.transient = transient


def _sqlstate(exc: DBAPIError) -> Optional[str]:
    orig = getattr(exc, "orig", None)
    # psycopg2 exposes pgcode, psycopg3 sqlstate
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def classify_store_error(exc: SQLAlchemyError) -> AppError:
    """Translate a SQLAlchemy failure into the workflow error taxonomy."""
    if isinstance(exc, DBAPIError):
        code = _sqlstate(exc)
        text = str(getattr(exc, "orig", exc)).lower()

        if isinstance(exc, IntegrityError):
            if code == UNIQUE_VIOLATION or "unique" in text:
                return ConflictError("Item already exists")
            if code == FOREIGN_KEY_VIOLATION or "foreign key" in text:
                return ValidationError("Referenced item not found")

        if code in (INSUFFICIENT_PRIVILEGE, RLS_POLICY_VIOLATION) or "row-level security" in text:
            return AuthorizationError("Access denied to this resource")

        if isinstance(exc, OperationalError) or exc.connection_invalidated:
            return StoreError("Database temporarily unavailable", cause=exc, transient=True)

    logger.error("Unclassified store error: %s", exc)
    return StoreError("Database operation failed", cause=exc)
