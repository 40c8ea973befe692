"""
HTTP middleware: request ids, timing, security headers and error logging.
"""
from __future__ import annotations

import time
import uuid
from typing import Any, Callable, Dict, Optional

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from tourguide.core import logging as app_logging
from tourguide.core.constants import HEADER_PROCESS_TIME, HEADER_REQUEST_ID

logger = app_logging.get_logger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
}


def get_request_id(request: Request) -> Optional[str]:
    """Request ID assigned by ``RequestIDMiddleware``, if any."""
    return getattr(request.state, "request_id", None)


def _request_context(request: Request, **extra: Any) -> Dict[str, Any]:
    context = {
        "request_id": get_request_id(request),
        "method": request.method,
        "path": request.url.path,
    }
    context.update(extra)
    return context


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Tags each request with an id, reusing an inbound ``X-Request-ID``.

    The id is exposed on ``request.state``, bound to the logging context
    variable for the duration of the request, and echoed in the response.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(HEADER_REQUEST_ID) or str(uuid.uuid4())
        request.state.request_id = request_id

        token = app_logging.request_id.set(request_id)
        try:
            response = await call_next(request)
        finally:
            app_logging.request_id.reset(token)

        response.headers[HEADER_REQUEST_ID] = request_id
        return response


class TimingMiddleware(BaseHTTPMiddleware):
    """Adds ``X-Process-Time`` (seconds) and logs one line per request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - started

        response.headers[HEADER_PROCESS_TIME] = f"{elapsed:.4f}"
        logger.info(
            "Request completed",
            extra=_request_context(
                request,
                status_code=response.status_code,
                process_time=f"{elapsed:.4f}s",
            ),
        )
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        for header, value in SECURITY_HEADERS.items():
            response.headers[header] = value
        return response


class ErrorLoggingMiddleware(BaseHTTPMiddleware):
    """Logs unhandled exceptions and 4xx/5xx responses."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                f"Unhandled error: {type(exc).__name__}",
                extra=_request_context(request, error_type=type(exc).__name__),
                exc_info=True,
            )
            raise

        if response.status_code >= 400:
            log = logger.error if response.status_code >= 500 else logger.warning
            log(
                f"Request failed with status {response.status_code}",
                extra=_request_context(request, status_code=response.status_code),
            )
        return response


def register_middlewares(app: FastAPI, include_security: bool = True) -> None:
    """
    Install the core middleware stack.

    Starlette runs the last-added middleware first, so request ids are
    assigned before timing and error logging run.
    """
    app.add_middleware(ErrorLoggingMiddleware)
    app.add_middleware(TimingMiddleware)
    if include_security:
        app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIDMiddleware)
