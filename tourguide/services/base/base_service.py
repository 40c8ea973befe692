"""
Base class for services: session, repository, clock, logging, and the
translation of unexpected exceptions into failed results.
"""

from abc import ABC
from typing import Any, Dict, Generic, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tourguide.core.clock import Clock, SystemClock
from tourguide.core.exceptions import (
    AuthenticationError,
    BaseAppException,
    EntityAlreadyExistsError,
    PaymentError,
)
from tourguide.core.logging import get_logger
from tourguide.repositories.base_repository import BaseRepository
from tourguide.services.base.service_result import (
    ErrorCode,
    ErrorSeverity,
    ServiceError,
    ServiceResult,
)

TModel = TypeVar("TModel")
TRepo = TypeVar("TRepo", bound=BaseRepository)

# Checked in order; first match wins
EXCEPTION_CODES = (
    (AuthenticationError, ErrorCode.UNAUTHORIZED),
    (EntityAlreadyExistsError, ErrorCode.INVALID_STATE),
    (PaymentError, ErrorCode.PAYMENT_ERROR),
)


class BaseService(ABC, Generic[TModel, TRepo]):
    """
    Common plumbing for the booking-domain services.

    Subclasses keep expected failures as ``ServiceResult`` values and pass
    anything they did not anticipate to ``_handle_exception``.
    """

    def __init__(self, repository: TRepo, db_session: Session, clock: Optional[Clock] = None):
        self.repository: TRepo = repository
        self.db: Session = db_session
        self.clock: Clock = clock or SystemClock()
        self._logger = get_logger(type(self).__module__).bind(service=type(self).__name__)

    # -------------------------------------------------------------------------
    # Errors
    # -------------------------------------------------------------------------

    def _handle_exception(
        self,
        exception: Exception,
        operation: str,
        entity_ref: Optional[Any] = None,
    ) -> ServiceResult:
        """
        Turn an exception raised inside ``operation`` into a failed result.

        Application exceptions keep their message and map onto an error
        code; anything else becomes INTERNAL_ERROR and is logged with its
        traceback.
        """
        context = {
            "operation": operation,
            "entity_ref": str(entity_ref) if entity_ref is not None else None,
            "exception_type": type(exception).__name__,
        }
        code = self._error_code_for(exception)

        if isinstance(exception, BaseAppException):
            self._logger.warning(f"{operation} rejected: {exception.message}", extra=context)
            return ServiceResult.failure(
                ServiceError(
                    code=code,
                    message=exception.message,
                    details=exception.details or None,
                    severity=ErrorSeverity.WARNING,
                )
            )

        self._logger.error(f"Error during {operation}: {exception}", exc_info=True, extra=context)
        return ServiceResult.failure(
            ServiceError(
                code=ErrorCode.INTERNAL_ERROR,
                message=f"Failed to {operation}",
                details={"error": str(exception), "entity_ref": context["entity_ref"]},
                severity=ErrorSeverity.CRITICAL,
            )
        )

    @staticmethod
    def _error_code_for(exception: Exception) -> ErrorCode:
        for exc_type, code in EXCEPTION_CODES:
            if isinstance(exception, exc_type):
                return code
        return ErrorCode.INTERNAL_ERROR

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    def _commit(self) -> None:
        try:
            self.db.commit()
        except Exception as e:
            self._logger.error(f"Commit failed: {e}", exc_info=True)
            self._rollback()
            raise

    def _rollback(self) -> None:
        try:
            self.db.rollback()
        except SQLAlchemyError as e:
            # Never mask the error that triggered the rollback
            self._logger.warning(f"Rollback failed: {e}")

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------

    def _log_operation(
        self,
        operation: str,
        entity_ref: Optional[Any] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = {"entity_ref": str(entity_ref) if entity_ref else None}
        if extra:
            context.update(extra)
        self._logger.info(operation, extra=context)
