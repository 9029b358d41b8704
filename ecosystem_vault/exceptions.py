"""
Consolidated exception system with error codes, context, and correlation support.

This module provides a unified exception hierarchy for the vault, with
automatic logging and correlation ID tracking. Error context must never carry
plaintext secrets, TOTP seeds, codes or key material.
"""

import threading
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

_thread_local = threading.local()


def _describe_cause(cause: Exception) -> Dict[str, str]:
    """
    Type and message of an underlying exception.

    SQLAlchemy statement errors render the SQL and its bound parameters,
    which may be ciphertext or user data; only the driver message is kept.
    """
    orig = getattr(cause, "orig", None)
    message = str(orig) if isinstance(orig, BaseException) else str(cause)
    return {"type": type(cause).__name__, "message": message}


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # System errors (1xxx)
    INTERNAL_ERROR = "1000"
    DATABASE_ERROR = "1001"
    CONFIGURATION_ERROR = "1003"
    DECRYPTION_FAILED = "1005"

    # Validation errors (2xxx)
    VALIDATION_FAILED = "2000"
    INVALID_FORMAT = "2001"
    MISSING_REQUIRED = "2002"
    INVALID_CODE = "2005"

    # Resource errors (3xxx)
    NOT_FOUND = "3000"
    DUPLICATE = "3001"
    CONFLICT = "3002"

    # Business logic errors (4xxx)
    BUSINESS_RULE_VIOLATION = "4000"
    PERMISSION_DENIED = "4003"

    # External service errors (5xxx)
    EXTERNAL_API_ERROR = "5002"


class BaseError(Exception):
    """Base exception with context, error codes, logging, and error chaining."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        status_code: int = 500,
        cause: Optional[Exception] = None,
        **context: Any,
    ):
        """
        Initialize base error with rich context.

        Args:
            message: Human-readable error message
            error_code: Standardized error code from ErrorCode enum
            status_code: HTTP status code for API responses
            cause: Original exception that caused this error
            **context: Additional context information
        """
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc).isoformat()
        self.error_id = str(uuid.uuid4())
        self.context = context

        correlation_id = get_correlation_id()
        if correlation_id:
            self.context["correlation_id"] = correlation_id

        self.context["error_id"] = self.error_id

        if cause:
            self.context["cause"] = _describe_cause(cause)

        self._log_error()

        super().__init__(message)

    def _log_error(self) -> None:
        """Log error with appropriate level based on status code."""
        # Imported here to avoid a circular dependency at module load time
        from .utils.logger import get_logger

        logger = get_logger()

        log_data = {
            "error_id": self.error_id,
            "error_code": self.error_code.value,
            "status_code": self.status_code,
            "error_message": self.message,
            "timestamp": self.timestamp,
            "context": {k: v for k, v in self.context.items() if k != "cause"},
        }

        if "correlation_id" in self.context:
            log_data["correlation_id"] = self.context["correlation_id"]

        if self.status_code >= 500:
            logger.error(
                f"Error {self.error_code.value}: {self.message}", extra=log_data, exc_info=self.cause
            )
        elif self.status_code >= 400:
            logger.warning(f"Client error {self.error_code.value}: {self.message}", extra=log_data)
        else:
            logger.info(f"Error {self.error_code.value}: {self.message}", extra=log_data)

    def to_dict(self, include_cause: bool = False) -> Dict[str, Any]:
        """
        Convert to dict for API responses.

        Args:
            include_cause: Include the type and message of the cause

        Returns:
            Dictionary representation suitable for JSON serialization
        """
        result: Dict[str, Any] = {
            "error": {
                "id": self.error_id,
                "code": self.error_code.value,
                "message": self.message,
                "timestamp": self.timestamp,
                "context": {
                    k: v
                    for k, v in self.context.items()
                    if k not in ["cause", "error_id", "correlation_id"]
                },
            }
        }

        if "correlation_id" in self.context:
            result["error"]["correlation_id"] = self.context["correlation_id"]

        if include_cause and "cause" in self.context:
            result["error"]["cause"] = dict(self.context["cause"])

        return result

    def add_context(self, **kwargs: Any) -> "BaseError":
        """
        Add additional context to the error (fluent interface).

        Returns:
            Self for method chaining
        """
        self.context.update(kwargs)
        return self

    @property
    def error_chain(self) -> List[Exception]:
        """Get the full chain of errors."""
        chain: List[Exception] = [self]
        current = self.cause
        while current:
            chain.append(current)
            current = getattr(current, "cause", None)
        return chain


# Layer-specific base exceptions
class RepositoryError(BaseError):
    """Repository layer errors."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.DATABASE_ERROR,
        status_code: int = 500,
        cause: Optional[Exception] = None,
        **context,
    ):
        """Initialize repository error with database context."""
        super().__init__(message, error_code, status_code, cause, **context)


class ServiceError(BaseError):
    """Service layer errors."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        operation: Optional[str] = None,
        cause: Optional[Exception] = None,
        status_code: int = 500,
        **context,
    ):
        """Initialize service error with operation context."""
        if operation:
            context["operation"] = operation
        super().__init__(message, error_code, status_code, cause, **context)


class ValidationError(BaseError):
    """Validation errors."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        cause: Optional[Exception] = None,
        **context,
    ):
        """Initialize validation error with field context."""
        if field:
            context["field"] = field
        super().__init__(message, error_code, 400, cause, **context)


class ExternalServiceError(BaseError):
    """External service integration errors."""

    def __init__(
        self,
        message: str,
        service_name: str,
        error_code: ErrorCode = ErrorCode.EXTERNAL_API_ERROR,
        cause: Optional[Exception] = None,
        **context,
    ):
        """Initialize external service error with service context."""
        context["service_name"] = service_name
        super().__init__(message, error_code, 502, cause, **context)


# ==================== RESOURCE EXCEPTIONS ====================


class NotFoundError(RepositoryError):
    """Raised when a referenced entity does not exist."""

    def __init__(self, message: str = "Resource not found", **kwargs):
        super().__init__(message, error_code=ErrorCode.NOT_FOUND, status_code=404, **kwargs)


class DuplicateError(RepositoryError):
    """Raised when a natural key is already taken."""

    def __init__(self, message: str = "Duplicate resource", **kwargs):
        super().__init__(message, error_code=ErrorCode.DUPLICATE, status_code=409, **kwargs)


class ConflictError(RepositoryError):
    """Raised when a record was modified concurrently. Callers may retry."""

    def __init__(self, message: str = "Record was modified concurrently", **kwargs):
        super().__init__(message, error_code=ErrorCode.CONFLICT, status_code=409, **kwargs)


class PersistenceError(RepositoryError):
    """Raised when the underlying store fails to apply a unit of work."""

    def __init__(self, message: str = "Failed to persist changes", **kwargs):
        super().__init__(message, error_code=ErrorCode.DATABASE_ERROR, status_code=500, **kwargs)


class ImmutableHistoryError(RepositoryError):
    """Raised when something tries to rewrite or remove a history entry."""

    def __init__(self, message: str = "Credential history entries are append-only", **kwargs):
        super().__init__(
            message, error_code=ErrorCode.BUSINESS_RULE_VIOLATION, status_code=500, **kwargs
        )


# ==================== CREDENTIAL-SPECIFIC EXCEPTIONS ====================


class DecryptionError(BaseError):
    """Raised when ciphertext is malformed or fails authentication."""

    def __init__(self, message: str = "Unable to decrypt stored secret", **kwargs):
        super().__init__(
            message=message, error_code=ErrorCode.DECRYPTION_FAILED, status_code=500, **kwargs
        )


class InvalidSeedError(ValidationError):
    """Raised when a TOTP seed is not valid base32."""

    def __init__(self, message: str = "TOTP secret is not valid base32", **kwargs):
        super().__init__(message, field="seed", error_code=ErrorCode.INVALID_FORMAT, **kwargs)


class EmptySeedError(ValidationError):
    """Raised when a TOTP seed is blank."""

    def __init__(self, message: str = "Secret key is required", **kwargs):
        super().__init__(message, field="seed", error_code=ErrorCode.MISSING_REQUIRED, **kwargs)


class InvalidCodeError(ValidationError):
    """Raised when a TOTP test code does not verify against the supplied seed."""

    def __init__(
        self,
        message: str = "Invalid verification code. Please check the secret and try again.",
        **kwargs,
    ):
        super().__init__(message, field="test_code", error_code=ErrorCode.INVALID_CODE, **kwargs)


class ConfigurationError(ServiceError):
    """Raised when required configuration is missing or malformed."""

    def __init__(self, message: str = "Invalid configuration", **kwargs):
        super().__init__(message, error_code=ErrorCode.CONFIGURATION_ERROR, **kwargs)


class PermissionDeniedError(BaseError):
    """Raised when the current actor may not perform an action."""

    def __init__(self, message: str = "Access denied", **kwargs):
        super().__init__(
            message=message, error_code=ErrorCode.PERMISSION_DENIED, status_code=403, **kwargs
        )


# Factory functions for common error patterns
def not_found(resource_type: str, cause: Optional[Exception] = None, **identifiers) -> NotFoundError:
    """
    Factory for not found errors.

    Args:
        resource_type: Type of resource (e.g., 'Platform', 'Ecosystem')
        cause: Original exception if any
        **identifiers: Resource identifiers (e.g., platform_id='123')

    Returns:
        Configured NotFoundError instance with 404 status
    """
    id_parts = [f"{k}={v}" for k, v in identifiers.items()]
    message = f"{resource_type} not found"
    if id_parts:
        message += f": {', '.join(id_parts)}"

    return NotFoundError(message, cause=cause, resource_type=resource_type, **identifiers)


def duplicate(
    resource_type: str, cause: Optional[Exception] = None, **identifiers
) -> DuplicateError:
    """
    Factory for duplicate resource errors.

    Args:
        resource_type: Type of resource (e.g., 'Platform', 'Ecosystem')
        cause: Original exception if any
        **identifiers: Resource identifiers

    Returns:
        Configured DuplicateError instance with 409 status
    """
    id_parts = [f"{k}={v}" for k, v in identifiers.items()]
    message = f"Duplicate {resource_type}"
    if id_parts:
        message += f": {', '.join(id_parts)}"

    return DuplicateError(message, cause=cause, resource_type=resource_type, **identifiers)


def permission_denied(
    action: str, resource: str, cause: Optional[Exception] = None, **context
) -> PermissionDeniedError:
    """
    Factory for permission denied errors.

    Args:
        action: Action that was denied (e.g., 'import', 'enroll_totp')
        resource: Resource being accessed
        cause: Original exception if any
        **context: Additional context

    Returns:
        Configured PermissionDeniedError instance
    """
    return PermissionDeniedError(
        f"Permission denied: {action} on {resource}",
        cause=cause,
        action=action,
        resource=resource,
        **context,
    )


# Correlation ID management
def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation ID for the current thread."""
    _thread_local.correlation_id = correlation_id


def get_correlation_id() -> Optional[str]:
    """Get the current thread's correlation ID."""
    return getattr(_thread_local, "correlation_id", None)


def clear_correlation_id() -> None:
    """Clear the current thread's correlation ID."""
    if hasattr(_thread_local, "correlation_id"):
        delattr(_thread_local, "correlation_id")


def describe_validation_errors(exc: Exception, tag: Optional[str] = None) -> List[str]:
    """
    Human-readable lines for a pydantic ValidationError.

    Only locations and messages are used; the rejected input is never echoed.
    ``tag`` is the discriminator value a tagged union prefixes to locations.
    """
    lines = []
    for error in exc.errors():  # type: ignore[attr-defined]
        loc = tuple(error.get("loc", ()))
        if tag is not None and loc[:1] == (tag,):
            loc = loc[1:]
        location = ".".join(str(part) for part in loc) or "value"
        error_type = error.get("type", "")
        if error_type == "missing":
            lines.append(f"Missing required field '{location}'")
        elif error_type == "extra_forbidden":
            lines.append(f"Unknown field '{location}'")
        else:
            message = str(error.get("msg", "invalid value"))
            if message.startswith("Value error, "):
                message = message[len("Value error, ") :]
            lines.append(f"{location}: {message}")
    return lines


def validation_error_from(exc: Exception, **context) -> ValidationError:
    """Wrap a pydantic ValidationError without leaking the rejected values."""
    lines = describe_validation_errors(exc)
    return ValidationError(
        "; ".join(lines) or "Validation failed",
        error_code=ErrorCode.VALIDATION_FAILED,
        errors=lines,
        **context,
    )
