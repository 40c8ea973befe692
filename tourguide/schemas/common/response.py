"""
Error response envelope.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import Field

from tourguide.schemas.common.base import BaseSchema

__all__ = ["ErrorDetail", "ErrorResponse"]


class ErrorDetail(BaseSchema):
    code: str = Field(..., description="Stable machine-readable error code")
    message: str = Field(..., description="Human-readable message")
    details: Optional[Dict[str, Any]] = None


class ErrorResponse(BaseSchema):
    success: bool = False
    error: ErrorDetail
