"""
Admin review moderation endpoints.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from courtside.core.security import require_admin
from courtside.db.session import get_db
from courtside.models.user import User
from courtside.schemas.review import (
    FlaggedReviewsResponse,
    ModerationRequest,
    PendingReviewsResponse,
    ReviewResponse,
)
from courtside.services import review_service

router = APIRouter(prefix="/admin/reviews", tags=["Admin: Reviews"])


@router.get("/pending", response_model=PendingReviewsResponse)
async def pending_reviews(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    reviews, total = await review_service.list_pending_reviews(db, page, page_size)
    return PendingReviewsResponse(reviews=reviews, total=total, page=page, page_size=page_size)


@router.get("/flagged", response_model=FlaggedReviewsResponse)
async def flagged_reviews(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Reported reviews awaiting a decision, each with its full report history."""
    reviews, total = await review_service.list_flagged_reviews(db, page, page_size)
    return FlaggedReviewsResponse(reviews=reviews, total=total, page=page, page_size=page_size)


@router.put("/{review_id}")
async def moderate_review(
    review_id: int,
    data: ModerationRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    APPROVE publishes the review and clears any flag.
    REJECT needs a reason and removes the review.
    """
    review = await review_service.moderate_review(db, review_id, data, admin)
    if review is None:
        return {"success": True, "message": "Review rejected and removed", "review": None}
    return {
        "success": True,
        "message": "Review approved",
        "review": ReviewResponse.model_validate(review),
    }
