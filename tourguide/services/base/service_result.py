"""
Outcome type returned by every service operation.

Expected failures (not found, forbidden, bad transition, collaborator
errors) travel back as a ``ServiceError`` inside a failed ``ServiceResult``;
only programming errors are raised.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Generic, Optional, TypeVar


class ErrorCode(str, Enum):
    """Stable failure codes; the HTTP layer maps each to a status."""

    NOT_FOUND = "NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"
    UNAUTHORIZED = "UNAUTHORIZED"
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Booking rules
    INVALID_STATE = "INVALID_STATE"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    GUIDE_UNAVAILABLE = "GUIDE_UNAVAILABLE"
    DUPLICATE_REVIEW = "DUPLICATE_REVIEW"

    PAYMENT_ERROR = "PAYMENT_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorSeverity(str, Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class ServiceError:
    """A failed operation: code, message and optional context."""

    code: ErrorCode
    message: str
    severity: ErrorSeverity = ErrorSeverity.ERROR
    details: Optional[Dict[str, Any]] = None
    field: Optional[str] = None


T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Success-or-failure wrapper.

    Attributes:
        is_success: Whether the operation went through
        data: Payload on success
        error: Failure description otherwise
        message: Short human-readable summary
    """

    is_success: bool
    data: Optional[T] = None
    error: Optional[ServiceError] = None
    message: Optional[str] = None

    # --- constructors ---------------------------------------------------------

    @classmethod
    def success(cls, data: Optional[T] = None, message: Optional[str] = None) -> "ServiceResult[T]":
        return cls(is_success=True, data=data, message=message)

    @classmethod
    def failure(cls, error: ServiceError) -> "ServiceResult[T]":
        return cls(is_success=False, error=error, message=error.message)

    @classmethod
    def error_of(
        cls,
        code: ErrorCode,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: ErrorSeverity = ErrorSeverity.WARNING,
    ) -> "ServiceResult[T]":
        return cls.failure(ServiceError(code=code, message=message, severity=severity, details=details))

    @classmethod
    def from_exception(cls, exception: Exception, operation: str) -> "ServiceResult[T]":
        """Failure for an unexpected exception; the text stays server-side unless DEBUG."""
        return cls.failure(
            ServiceError(
                code=ErrorCode.INTERNAL_ERROR,
                message=f"Failed to {operation}: {exception}",
                details={"exception_type": type(exception).__name__},
            )
        )

    @classmethod
    def validation_failure(
        cls,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> "ServiceResult[T]":
        return cls.failure(
            ServiceError(
                code=ErrorCode.VALIDATION_ERROR,
                message=message,
                severity=ErrorSeverity.WARNING,
                field=field,
                details=details,
            )
        )

    @classmethod
    def not_found(cls, resource_type: str, resource_id: Optional[str] = None) -> "ServiceResult[T]":
        message = f"{resource_type} not found"
        if resource_id:
            message = f"{message} (ID: {resource_id})"
        return cls.error_of(
            ErrorCode.NOT_FOUND,
            message,
            details={"resource_type": resource_type, "resource_id": resource_id},
        )

    @classmethod
    def forbidden(cls, action: Optional[str] = None, resource: Optional[str] = None) -> "ServiceResult[T]":
        """Acting user is not a participant allowed to ``action`` the ``resource``."""
        message = "Forbidden"
        if action:
            message += f": cannot {action}"
        if resource:
            message += f" {resource}"
        return cls.error_of(ErrorCode.FORBIDDEN, message, details={"action": action, "resource": resource})

    @classmethod
    def invalid_transition(cls, current: Any, target: Any) -> "ServiceResult[T]":
        current_value = getattr(current, "value", current)
        target_value = getattr(target, "value", target)
        return cls.error_of(
            ErrorCode.INVALID_TRANSITION,
            f"Cannot move booking from {current_value} to {target_value}",
            details={"current_status": current_value, "target_status": target_value},
        )

    @classmethod
    def payment_failure(cls, message: str, details: Optional[Dict[str, Any]] = None) -> "ServiceResult[T]":
        return cls.error_of(ErrorCode.PAYMENT_ERROR, message, details=details, severity=ErrorSeverity.ERROR)

    # --- accessors ------------------------------------------------------------

    @property
    def error_code(self) -> Optional[ErrorCode]:
        return self.error.code if self.error else None

    def unwrap(self) -> T:
        """
        Data of a successful result.

        Raises:
            ValueError: If the result is a failure
        """
        if not self.is_success:
            reason = self.error.message if self.error else "unknown error"
            raise ValueError(f"Cannot unwrap failed result: {reason}")
        return self.data

    def __bool__(self) -> bool:
        return self.is_success

    def __repr__(self) -> str:
        if self.is_success:
            return "ServiceResult(success)"
        return f"ServiceResult(failure: {self.error_code.value if self.error_code else None})"


__all__ = [
    "ErrorCode",
    "ErrorSeverity",
    "ServiceError",
    "ServiceResult",
]
