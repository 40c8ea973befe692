"""
Translation of service failures and exceptions into HTTP error responses.

Every error body has the same shape::

    {"success": false, "error": {"code": ..., "message": ..., "details": ...}}
"""

from typing import Any, Dict, Optional, TypeVar

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from tourguide.core.exceptions import BaseAppException, ErrorCode as AppErrorCode
from tourguide.core.logging import get_logger
from tourguide.core.middleware import get_request_id
from tourguide.services.base.service_result import ErrorCode, ServiceError, ServiceResult

logger = get_logger(__name__)

T = TypeVar("T")

GENERIC_INTERNAL_MESSAGE = "An unexpected error occurred"

STATUS_BY_CODE: Dict[ErrorCode, int] = {
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorCode.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.INVALID_STATE: status.HTTP_409_CONFLICT,
    ErrorCode.INVALID_TRANSITION: status.HTTP_409_CONFLICT,
    ErrorCode.DUPLICATE_REVIEW: status.HTTP_409_CONFLICT,
    ErrorCode.GUIDE_UNAVAILABLE: status.HTTP_409_CONFLICT,
    ErrorCode.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorCode.PAYMENT_ERROR: status.HTTP_402_PAYMENT_REQUIRED,
    ErrorCode.INTERNAL_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

# Exceptions raised outside the service layer (e.g. token verification)
APP_ERROR_CODES: Dict[AppErrorCode, ErrorCode] = {
    AppErrorCode.AUTHENTICATION_FAILED: ErrorCode.UNAUTHORIZED,
    AppErrorCode.DUPLICATE_ENTRY: ErrorCode.INVALID_STATE,
    AppErrorCode.PAYMENT_FAILED: ErrorCode.PAYMENT_ERROR,
    AppErrorCode.PAYMENT_GATEWAY_ERROR: ErrorCode.PAYMENT_ERROR,
}


class ServiceResultError(Exception):
    """Raised by routers when a service returns a failed result."""

    def __init__(self, error: ServiceError):
        self.error = error
        super().__init__(error.message)

    @property
    def status_code(self) -> int:
        return STATUS_BY_CODE.get(self.error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)


def unwrap_result(result: ServiceResult[T]) -> T:
    """Return the data of a successful result or raise ``ServiceResultError``."""
    if result.is_success:
        return result.data
    error = result.error or ServiceError(code=ErrorCode.INTERNAL_ERROR, message=GENERIC_INTERNAL_MESSAGE)
    raise ServiceResultError(error)


def error_body(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {
        "success": False,
        "error": {"code": code, "message": message, "details": details or {}},
    }


def _is_debug(request: Request) -> bool:
    settings = getattr(request.app.state, "settings", None)
    return bool(settings and settings.DEBUG)


async def service_result_error_handler(request: Request, exc: ServiceResultError) -> JSONResponse:
    error = exc.error
    message = error.message
    details = error.details
    if error.code == ErrorCode.INTERNAL_ERROR and not _is_debug(request):
        message = GENERIC_INTERNAL_MESSAGE
        details = None

    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(error.code.value, message, details),
    )


async def app_exception_handler(request: Request, exc: BaseAppException) -> JSONResponse:
    code = APP_ERROR_CODES.get(exc.error_code, ErrorCode.INTERNAL_ERROR)
    logger.warning(
        f"Application exception: {exc.error_code.value} - {exc.message}",
        extra={"path": request.url.path, "method": request.method},
    )

    if code == ErrorCode.INTERNAL_ERROR and not _is_debug(request):
        content = error_body(code.value, GENERIC_INTERNAL_MESSAGE)
    else:
        content = error_body(code.value, exc.message, exc.details)

    headers = {"WWW-Authenticate": "Bearer"} if code == ErrorCode.UNAUTHORIZED else None
    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    field_errors = {}
    for error in exc.errors():
        field_path = ".".join(str(x) for x in error["loc"])
        field_errors[field_path] = {"message": error["msg"], "type": error["type"]}

    logger.warning(
        f"Validation error: {len(field_errors)} field(s) failed validation",
        extra={"path": request.url.path, "method": request.method},
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_body(
            ErrorCode.VALIDATION_ERROR.value,
            "Request validation failed",
            {"field_errors": field_errors, "error_count": len(field_errors)},
        ),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = {
        status.HTTP_401_UNAUTHORIZED: ErrorCode.UNAUTHORIZED,
        status.HTTP_403_FORBIDDEN: ErrorCode.FORBIDDEN,
        status.HTTP_404_NOT_FOUND: ErrorCode.NOT_FOUND,
    }.get(exc.status_code, ErrorCode.INTERNAL_ERROR if exc.status_code >= 500 else ErrorCode.VALIDATION_ERROR)

    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(code.value, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def unexpected_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unexpected error: {type(exc).__name__}",
        extra={"path": request.url.path, "method": request.method, "request_id": get_request_id(request)},
        exc_info=exc,
    )
    message = f"{type(exc).__name__}: {exc}" if _is_debug(request) else GENERIC_INTERNAL_MESSAGE
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(ErrorCode.INTERNAL_ERROR.value, message),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceResultError, service_result_error_handler)
    app.add_exception_handler(BaseAppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unexpected_exception_handler)
