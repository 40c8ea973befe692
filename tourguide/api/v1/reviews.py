"""
Review endpoints.
"""
from typing import Optional

from fastapi import APIRouter, Depends, status

from tourguide.api import deps
from tourguide.api.errors import unwrap_result
from tourguide.core.security import Identity
from tourguide.schemas.common.pagination import PaginatedResponse, PaginationParams
from tourguide.schemas.review import ReviewCreate, ReviewResponse
from tourguide.services.review import ReviewService

router = APIRouter(prefix="/reviews", tags=["Reviews"])


@router.post("", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
def create_review(
    payload: ReviewCreate,
    identity: Identity = Depends(deps.get_current_identity),
    service: ReviewService = Depends(deps.get_review_service),
):
    return unwrap_result(service.create_review(identity.user_id, payload))


@router.get("/guide/{guide_id}", response_model=PaginatedResponse[ReviewResponse])
def list_guide_reviews(
    guide_id: str,
    pagination: PaginationParams = Depends(),
    service: ReviewService = Depends(deps.get_review_service),
):
    return unwrap_result(service.list_for_guide(guide_id, page=pagination.page, limit=pagination.limit))


@router.get("/booking/{booking_id}", response_model=Optional[ReviewResponse])
def get_booking_review(
    booking_id: str,
    identity: Identity = Depends(deps.get_current_identity),
    service: ReviewService = Depends(deps.get_review_service),
):
    return unwrap_result(service.get_for_booking(booking_id))


@router.get("/{review_id}", response_model=ReviewResponse)
def get_review(
    review_id: str,
    service: ReviewService = Depends(deps.get_review_service),
):
    return unwrap_result(service.get_review(review_id))
