from tourguide.schemas.common.base import BaseCreateSchema, BaseResponseSchema, BaseSchema
from tourguide.schemas.common.pagination import PaginatedResponse, PaginationParams
from tourguide.schemas.common.response import ErrorDetail, ErrorResponse

__all__ = [
    "BaseSchema",
    "BaseCreateSchema",
    "BaseResponseSchema",
    "PaginatedResponse",
    "PaginationParams",
    "ErrorDetail",
    "ErrorResponse",
]
