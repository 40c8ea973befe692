"""
Application exceptions.

Raised by repositories, the payment gateway and token verification.
Services catch them and hand back ``ServiceResult`` failures; the HTTP
layer maps any that escape onto an error response.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    INTERNAL_ERROR = "INTERNAL_ERROR"
    AUTHENTICATION_FAILED = "AUTHENTICATION_FAILED"
    DATABASE_ERROR = "DATABASE_ERROR"
    DUPLICATE_ENTRY = "DUPLICATE_ENTRY"
    PAYMENT_FAILED = "PAYMENT_FAILED"
    PAYMENT_GATEWAY_ERROR = "PAYMENT_GATEWAY_ERROR"


class BaseAppException(Exception):
    """Root of the hierarchy: message, code, details and an HTTP status."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        super().__init__(message)

    def __str__(self) -> str:
        return f"{self.error_code.value}: {self.message}"


class AuthenticationError(BaseAppException):
    """Bearer token missing, malformed, expired or signed with another key."""

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, ErrorCode.AUTHENTICATION_FAILED, None, 401)


# --- Persistence ---------------------------------------------------------------

class RepositoryError(BaseAppException):
    def __init__(self, message: str = "Repository operation failed"):
        super().__init__(message, ErrorCode.DATABASE_ERROR, None, 500)


class EntityAlreadyExistsError(BaseAppException):
    """A unique constraint rejected the row (e.g. a second review for a booking)."""

    def __init__(self, message: str = "Duplicate entry", field: Optional[str] = None, value: Any = None):
        super().__init__(message, ErrorCode.DUPLICATE_ENTRY, {"field": field, "value": value}, 409)


# --- Payments --------------------------------------------------------------------

class PaymentError(BaseAppException):
    def __init__(
        self,
        message: str = "Payment failed",
        payment_id: Optional[str] = None,
        amount: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.PAYMENT_FAILED,
    ):
        super().__init__(message, error_code, {"payment_id": payment_id, "amount": amount}, 402)


class PaymentGatewayError(PaymentError):
    """The payment processor rejected the call or could not be reached."""

    def __init__(
        self,
        message: str = "Payment gateway error",
        gateway_name: Optional[str] = None,
        gateway_error_code: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(message, error_code=ErrorCode.PAYMENT_GATEWAY_ERROR, **kwargs)
        self.details.update({"gateway_name": gateway_name, "gateway_error_code": gateway_error_code})


class WebhookVerificationError(PaymentError):
    def __init__(self, message: str = "Webhook signature verification failed"):
        super().__init__(message, error_code=ErrorCode.PAYMENT_GATEWAY_ERROR)


__all__ = [
    "ErrorCode",
    "BaseAppException",
    "AuthenticationError",
    "RepositoryError",
    "EntityAlreadyExistsError",
    "PaymentError",
    "PaymentGatewayError",
    "WebhookVerificationError",
]
