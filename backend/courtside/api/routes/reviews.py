"""
Venue review endpoints: rating summary, helpful votes, flags, owner responses.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from courtside.core.security import get_current_user
from courtside.db.session import get_db
from courtside.models.user import User
from courtside.schemas.review import (
    FlagRequest,
    HelpfulVoteResponse,
    OwnerResponseRequest,
    RatingSummaryResponse,
    ReviewResponse,
)
from courtside.services import review_service

router = APIRouter(prefix="/venues/{facility_id}", tags=["Reviews"])


@router.get("/rating", response_model=RatingSummaryResponse)
async def get_rating(facility_id: int, db: AsyncSession = Depends(get_db)):
    """
    Approved-review summary for a venue. Cached in Redis for
    REDIS_CACHE_TTL seconds and dropped whenever a review is moderated.
    """
    return await review_service.get_facility_rating(db, facility_id)


@router.post("/reviews/{review_id}/helpful", response_model=HelpfulVoteResponse)
async def mark_helpful(
    facility_id: int,
    review_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    count = await review_service.vote_helpful(db, facility_id, review_id, user)
    return HelpfulVoteResponse(review_id=review_id, helpful_count=count, voted=True)


@router.delete("/reviews/{review_id}/helpful", response_model=HelpfulVoteResponse)
async def unmark_helpful(
    facility_id: int,
    review_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    count = await review_service.unvote_helpful(db, facility_id, review_id, user)
    return HelpfulVoteResponse(review_id=review_id, helpful_count=count, voted=False)


@router.post("/reviews/{review_id}/flag", response_model=ReviewResponse)
async def flag_review(
    facility_id: int,
    review_id: int,
    data: FlagRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Report a review for moderation. Every report is kept."""
    return await review_service.flag_review(db, facility_id, review_id, data, user)


@router.post(
    "/reviews/{review_id}/response",
    response_model=ReviewResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_response(
    facility_id: int,
    review_id: int,
    data: OwnerResponseRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Reply to a review as the venue owner. One reply per review; use PUT to edit it."""
    return await review_service.add_owner_response(db, facility_id, review_id, user, data.response)


@router.put("/reviews/{review_id}/response", response_model=ReviewResponse)
async def update_response(
    facility_id: int,
    review_id: int,
    data: OwnerResponseRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await review_service.update_owner_response(db, facility_id, review_id, user, data.response)


@router.delete("/reviews/{review_id}/response")
async def delete_response(
    facility_id: int,
    review_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    deleted = await review_service.delete_owner_response(db, facility_id, review_id, user)
    return {
        "success": True,
        "message": "Response deleted successfully" if deleted else "No response to delete",
    }
