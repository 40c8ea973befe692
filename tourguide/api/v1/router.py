"""
API v1 Router - Main Entry Point
Aggregates all v1 API endpoints for the tour-guide marketplace
"""
from fastapi import APIRouter

from tourguide.api.v1 import bookings, polling, reviews, webhooks
from tourguide.schemas.common.response import ErrorResponse

router = APIRouter(
    responses={
        400: {"model": ErrorResponse, "description": "Bad Request"},
        401: {"model": ErrorResponse, "description": "Unauthorized"},
        403: {"model": ErrorResponse, "description": "Forbidden"},
        404: {"model": ErrorResponse, "description": "Not Found"},
        409: {"model": ErrorResponse, "description": "Conflict"},
        422: {"model": ErrorResponse, "description": "Validation Error"},
        500: {"model": ErrorResponse, "description": "Internal Server Error"},
    }
)

router.include_router(bookings.router)
router.include_router(reviews.router)
router.include_router(polling.router)
router.include_router(webhooks.router)


@router.get("/health", tags=["Health"])
def health_check():
    return {"status": "healthy"}
