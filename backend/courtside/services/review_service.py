"""
Review service: moderation, flags, helpful votes, owner responses and ratings.

Rules live in courtside.domain.review_moderation. This module loads the review,
asks the engine, and writes the result so that the storage constraints back
up the engine's checks:

  - helpful votes: INSERT guarded by uq_helpful_vote, counter moved with an
    atomic UPDATE ... SET helpful_count = helpful_count + 1
  - owner response: UPDATE ... WHERE owner_response IS NULL, so two owners
    racing to respond cannot both succeed
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from fastapi import HTTPException, status

from courtside.core.errors import raise_for_failure
from courtside.core.logging import get_logger
from courtside.core.metrics import record_helpful_vote, record_moderation
from courtside.core.security import actor_for
from courtside.domain import review_moderation as engine
from courtside.domain.results import ErrorKind, Failure
from courtside.models.facility import Facility
from courtside.models.review import Review, ReviewFlag, ReviewHelpfulVote
from courtside.models.user import User
from courtside.schemas.review import FlagRequest, ModerationRequest
from courtside.services.cache_service import (
    get_cached_rating,
    invalidate_rating_cache,
    set_cached_rating,
)

logger = get_logger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def to_state(review: Review, voter_ids: frozenset = frozenset()) -> engine.ReviewState:
    return engine.ReviewState(
        id=review.id,
        author_id=review.user_id,
        facility_id=review.facility_id,
        facility_owner_id=review.facility.owner_id if review.facility is not None else None,
        rating=review.rating,
        is_approved=review.is_approved,
        is_flagged=review.is_flagged,
        flag_reason=review.flag_reason,
        helpful_count=review.helpful_count,
        helpful_voter_ids=voter_ids,
        owner_response=review.owner_response,
        owner_responded_at=review.owner_responded_at,
    )


async def _load_review(
    db: AsyncSession,
    review_id: int,
    facility_id: Optional[int] = None,
) -> Optional[Review]:
    query = select(Review).where(Review.id == review_id)
    if facility_id is not None:
        query = query.where(Review.facility_id == facility_id)
    result = await db.execute(query)
    return result.scalar_one_or_none()


def _apply(review: Review, changes: dict) -> None:
    for name, value in changes.items():
        setattr(review, name, value)


# ==================== MODERATION ====================

async def moderate_review(
    db: AsyncSession,
    review_id: int,
    data: ModerationRequest,
    admin: User,
) -> Optional[Review]:
    """Approve (returns the review) or reject (deletes it, returns None)."""
    review = await _load_review(db, review_id)
    state = to_state(review) if review else None

    result = engine.moderate(state, data.action, actor_for(admin), _now(), reason=data.reason)
    if not result.ok:
        record_moderation(data.action.value, "rejected")
        raise_for_failure(result)

    change = result.value
    if change.delete:
        facility_id = review.facility_id
        await db.delete(review)
        await db.flush()
        logger.info(
            "review_rejected",
            review_id=review_id,
            facility_id=facility_id,
            moderator_id=admin.id,
            reason=change.changes["rejection_reason"],
        )
        record_moderation(data.action.value, "removed")
        # Cleared only once the change is visible to other sessions
        await db.commit()
        await invalidate_rating_cache(facility_id)
        return None

    if not change.changed:
        record_moderation(data.action.value, "noop")
        return review

    _apply(review, change.changes)
    await db.flush()
    logger.info("review_approved", review_id=review.id, moderator_id=admin.id)
    record_moderation(data.action.value, "applied")
    await db.commit()
    await invalidate_rating_cache(review.facility_id)
    return review


async def list_pending_reviews(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[Review], int]:
    """Unapproved, unflagged reviews, oldest first."""
    query = select(Review).where(Review.is_approved.is_(False), Review.is_flagged.is_(False))

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    result = await db.execute(
        query.order_by(Review.created_at.asc()).offset((page - 1) * page_size).limit(page_size)
    )
    return list(result.scalars().all()), total


async def list_flagged_reviews(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[Review], int]:
    """Flagged reviews, most recently flagged first, with every report on each."""
    query = select(Review).where(Review.is_flagged.is_(True))

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    result = await db.execute(
        query.options(selectinload(Review.flags))
        .order_by(Review.flagged_at.desc().nulls_last(), Review.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return list(result.scalars().all()), total


# ==================== FLAGS ====================

async def flag_review(
    db: AsyncSession,
    facility_id: int,
    review_id: int,
    data: FlagRequest,
    reporter: User,
) -> Review:
    review = await _load_review(db, review_id, facility_id)
    state = to_state(review) if review else None

    result = engine.flag(state, reporter.id, data.full_reason, _now())
    if not result.ok:
        raise_for_failure(result)

    outcome = result.value
    _apply(review, outcome.change.changes)
    db.add(
        ReviewFlag(
            review_id=outcome.record.review_id,
            reporter_id=outcome.record.reporter_id,
            reason=outcome.record.reason,
        )
    )
    await db.flush()
    logger.info("review_flagged", review_id=review.id, reporter_id=reporter.id)
    return review


# ==================== HELPFUL VOTES ====================

async def _has_voted(db: AsyncSession, review_id: int, user_id: int) -> bool:
    result = await db.execute(
        select(ReviewHelpfulVote.id).where(
            ReviewHelpfulVote.review_id == review_id,
            ReviewHelpfulVote.user_id == user_id,
        )
    )
    return result.first() is not None


async def _helpful_count(db: AsyncSession, review_id: int) -> int:
    result = await db.execute(select(Review.helpful_count).where(Review.id == review_id))
    return result.scalar_one()


async def vote_helpful(db: AsyncSession, facility_id: int, review_id: int, voter: User) -> int:
    review = await _load_review(db, review_id, facility_id)
    voters = frozenset({voter.id}) if review and await _has_voted(db, review_id, voter.id) else frozenset()
    state = to_state(review, voters) if review else None

    result = engine.vote_helpful(state, voter.id)
    if not result.ok:
        record_helpful_vote("vote", result.kind.value.lower())
        raise_for_failure(result)

    try:
        async with db.begin_nested():
            db.add(ReviewHelpfulVote(review_id=review_id, user_id=voter.id))
            await db.flush()
    except IntegrityError:
        # Lost the race to a concurrent vote from the same user
        record_helpful_vote("vote", "already_voted")
        raise_for_failure(Failure(ErrorKind.ALREADY_VOTED, "You have already marked this review as helpful"))

    await db.execute(
        update(Review)
        .where(Review.id == review_id)
        .values(helpful_count=Review.helpful_count + 1)
        .execution_options(synchronize_session=False)
    )
    record_helpful_vote("vote", "applied")
    count = await _helpful_count(db, review_id)
    logger.info("review_helpful_vote", review_id=review_id, voter_id=voter.id, helpful_count=count)
    return count


async def unvote_helpful(db: AsyncSession, facility_id: int, review_id: int, voter: User) -> int:
    review = await _load_review(db, review_id, facility_id)
    voters = frozenset({voter.id}) if review and await _has_voted(db, review_id, voter.id) else frozenset()
    state = to_state(review, voters) if review else None

    result = engine.unvote_helpful(state, voter.id)
    if not result.ok:
        record_helpful_vote("unvote", result.kind.value.lower())
        raise_for_failure(result)

    deleted = await db.execute(
        delete(ReviewHelpfulVote).where(
            ReviewHelpfulVote.review_id == review_id,
            ReviewHelpfulVote.user_id == voter.id,
        )
    )
    if deleted.rowcount == 0:
        record_helpful_vote("unvote", "not_voted")
        raise_for_failure(Failure(ErrorKind.NOT_VOTED, "You have not marked this review as helpful"))

    await db.execute(
        update(Review)
        .where(Review.id == review_id)
        .values(
            helpful_count=case(
                (Review.helpful_count > 0, Review.helpful_count - 1),
                else_=0,
            )
        )
        .execution_options(synchronize_session=False)
    )
    record_helpful_vote("unvote", "applied")
    count = await _helpful_count(db, review_id)
    logger.info("review_helpful_unvote", review_id=review_id, voter_id=voter.id, helpful_count=count)
    return count


# ==================== OWNER RESPONSES ====================

async def add_owner_response(
    db: AsyncSession,
    facility_id: int,
    review_id: int,
    user: User,
    text: str,
) -> Review:
    review = await _load_review(db, review_id, facility_id)
    state = to_state(review) if review else None

    result = engine.add_owner_response(state, actor_for(user), text, _now())
    if not result.ok:
        raise_for_failure(result)

    changes = result.value.changes
    written = await db.execute(
        update(Review)
        .where(Review.id == review_id, Review.owner_response.is_(None))
        .values(**changes)
        .execution_options(synchronize_session=False)
    )
    if written.rowcount == 0:
        raise_for_failure(
            Failure(
                ErrorKind.ALREADY_RESPONDED,
                "You have already responded to this review. Update the existing response instead.",
            )
        )
    await db.refresh(review)
    logger.info("owner_response_added", review_id=review_id, responder_id=user.id)
    return review


async def update_owner_response(
    db: AsyncSession,
    facility_id: int,
    review_id: int,
    user: User,
    text: str,
) -> Review:
    review = await _load_review(db, review_id, facility_id)
    state = to_state(review) if review else None

    result = engine.update_owner_response(state, actor_for(user), text, _now())
    if not result.ok:
        raise_for_failure(result)

    _apply(review, result.value.changes)
    await db.flush()
    logger.info("owner_response_updated", review_id=review_id, responder_id=user.id)
    return review


async def delete_owner_response(db: AsyncSession, facility_id: int, review_id: int, user: User) -> bool:
    """Returns False when there was no response to delete."""
    review = await _load_review(db, review_id, facility_id)
    state = to_state(review) if review else None

    result = engine.delete_owner_response(state, actor_for(user))
    if not result.ok:
        raise_for_failure(result)

    change = result.value
    if not change.changed:
        return False

    _apply(review, change.changes)
    await db.flush()
    logger.info("owner_response_deleted", review_id=review_id, responder_id=user.id)
    return True


# ==================== RATINGS ====================

async def get_facility_rating(db: AsyncSession, facility_id: int) -> dict:
    cached = await get_cached_rating(facility_id)
    if cached:
        cached["cached"] = True
        return cached

    facility = await db.get(Facility, facility_id)
    if facility is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Venue {facility_id} not found",
        )

    result = await db.execute(
        select(Review.rating, Review.is_approved).where(
            Review.facility_id == facility_id,
            Review.is_approved.is_(True),
        )
    )
    summary = engine.aggregate_rating(result.all())

    data = {"facility_id": facility_id, **summary.to_payload(), "cached": False}
    await set_cached_rating(facility_id, data)
    return data
