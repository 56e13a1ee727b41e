"""
Review moderation engine.

Pure functions over a loaded ``ReviewState``: approval and rejection, flags,
helpful votes, the single owner response, and rating aggregation for a venue.
Each returns a Success with the fields the caller should write, or a Failure
naming the rule that was broken. Storage enforces the matching uniqueness
constraints (one vote per user per review) so concurrent requests cannot
double count.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Iterable, Mapping, Optional

from courtside.domain.actors import Actor
from courtside.domain.results import ErrorKind, Failure, Result, Success, round_half_up

WILSON_Z = 1.96  # 95% confidence


class ModerationAction(str, Enum):
    APPROVE = "APPROVE"
    REJECT = "REJECT"


class ReviewStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    FLAGGED = "FLAGGED"


@dataclass(frozen=True)
class ReviewState:
    id: int
    author_id: int
    facility_id: int
    facility_owner_id: Optional[int]
    rating: int
    is_approved: bool = False
    is_flagged: bool = False
    flag_reason: Optional[str] = None
    helpful_count: int = 0
    helpful_voter_ids: frozenset = frozenset()
    owner_response: Optional[str] = None
    owner_responded_at: Optional[datetime] = None

    @property
    def status(self) -> ReviewStatus:
        if self.is_flagged:
            return ReviewStatus.FLAGGED
        if self.is_approved:
            return ReviewStatus.APPROVED
        return ReviewStatus.PENDING


@dataclass(frozen=True)
class ReviewChange:
    review_id: int
    changes: Mapping[str, Any] = field(default_factory=dict)
    delete: bool = False

    @property
    def changed(self) -> bool:
        return self.delete or bool(self.changes)


@dataclass(frozen=True)
class FlagRecord:
    review_id: int
    reporter_id: int
    reason: str
    flagged_at: datetime


@dataclass(frozen=True)
class FlagOutcome:
    change: ReviewChange
    record: FlagRecord


@dataclass(frozen=True)
class VoteChange:
    review_id: int
    voter_id: int
    added: bool
    helpful_count: int


@dataclass(frozen=True)
class RatingSummary:
    count: int
    mean: Optional[float]
    distribution: Mapping[int, int]
    weighted_score: Optional[float] = None

    @property
    def display_mean(self) -> Optional[float]:
        if self.mean is None:
            return None
        return float(round_half_up(self.mean, 1))

    def to_payload(self) -> dict[str, Any]:
        return {
            "average_rating": self.display_mean,
            "total_reviews": self.count,
            "distribution": {str(k): v for k, v in self.distribution.items()},
            "weighted_score": self.weighted_score,
        }


def _not_found() -> Failure:
    return Failure(ErrorKind.NOT_FOUND, "Review not found")


def _can_respond(review: ReviewState, actor: Actor) -> bool:
    return actor.is_admin or (actor.id is not None and actor.id == review.facility_owner_id)


def moderate(
    review: Optional[ReviewState],
    action: ModerationAction,
    moderator: Actor,
    now: datetime,
    reason: Optional[str] = None,
) -> Result[ReviewChange]:
    """Approve or reject. Rejection removes the review, so it needs a reason."""
    if review is None:
        return _not_found()

    if action == ModerationAction.REJECT:
        if not reason or not reason.strip():
            return Failure(ErrorKind.MISSING_REASON, "Reason is required for rejection")
        return Success(
            ReviewChange(
                review_id=review.id,
                changes={
                    "rejection_reason": reason.strip(),
                    "moderated_by": moderator.id,
                    "moderated_at": now,
                },
                delete=True,
            )
        )

    # Approving again is a no-op unless it also dismisses an open flag
    if review.is_approved and not review.is_flagged:
        return Success(ReviewChange(review_id=review.id))

    return Success(
        ReviewChange(
            review_id=review.id,
            changes={
                "is_approved": True,
                "is_flagged": False,
                "flag_reason": None,
                "moderated_by": moderator.id,
                "moderated_at": now,
            },
        )
    )


def flag(
    review: Optional[ReviewState],
    reporter_id: int,
    reason: str,
    now: datetime,
) -> Result[FlagOutcome]:
    if review is None:
        return _not_found()
    if not reason or not reason.strip():
        return Failure(ErrorKind.MISSING_REASON, "A reason is required to flag a review")

    reason = reason.strip()
    change = ReviewChange(
        review_id=review.id,
        changes={
            "is_flagged": True,
            "flag_reason": reason,
            "flagged_by": reporter_id,
            "flagged_at": now,
        },
    )
    record = FlagRecord(review_id=review.id, reporter_id=reporter_id, reason=reason, flagged_at=now)
    return Success(FlagOutcome(change=change, record=record))


def vote_helpful(review: Optional[ReviewState], voter_id: int) -> Result[VoteChange]:
    if review is None:
        return _not_found()
    if voter_id == review.author_id:
        return Failure(ErrorKind.CANNOT_VOTE_OWN_REVIEW, "You cannot mark your own review as helpful")
    if voter_id in review.helpful_voter_ids:
        return Failure(ErrorKind.ALREADY_VOTED, "You have already marked this review as helpful")
    return Success(
        VoteChange(
            review_id=review.id,
            voter_id=voter_id,
            added=True,
            helpful_count=review.helpful_count + 1,
        )
    )


def unvote_helpful(review: Optional[ReviewState], voter_id: int) -> Result[VoteChange]:
    if review is None:
        return _not_found()
    if voter_id not in review.helpful_voter_ids:
        return Failure(ErrorKind.NOT_VOTED, "You have not marked this review as helpful")
    return Success(
        VoteChange(
            review_id=review.id,
            voter_id=voter_id,
            added=False,
            helpful_count=max(0, review.helpful_count - 1),
        )
    )


def add_owner_response(
    review: Optional[ReviewState],
    actor: Actor,
    text: str,
    now: datetime,
) -> Result[ReviewChange]:
    if review is None:
        return _not_found()
    if not _can_respond(review, actor):
        return Failure(ErrorKind.NOT_VENUE_OWNER, "You can only respond to reviews on your venues")
    if review.owner_response is not None:
        return Failure(
            ErrorKind.ALREADY_RESPONDED,
            "You have already responded to this review. Update the existing response instead.",
        )
    return Success(
        ReviewChange(
            review_id=review.id,
            changes={"owner_response": text, "owner_responded_at": now},
        )
    )


def update_owner_response(
    review: Optional[ReviewState],
    actor: Actor,
    text: str,
    now: datetime,
) -> Result[ReviewChange]:
    if review is None:
        return _not_found()
    if not _can_respond(review, actor):
        return Failure(ErrorKind.NOT_VENUE_OWNER, "You can only update responses on your venues")
    if review.owner_response is None:
        return Failure(
            ErrorKind.NO_RESPONSE_TO_UPDATE,
            "No response found to update. Create one first.",
        )
    return Success(
        ReviewChange(
            review_id=review.id,
            changes={"owner_response": text, "owner_responded_at": now},
        )
    )


def delete_owner_response(review: Optional[ReviewState], actor: Actor) -> Result[ReviewChange]:
    if review is None:
        return _not_found()
    if not _can_respond(review, actor):
        return Failure(ErrorKind.NOT_VENUE_OWNER, "You can only delete responses on your venues")
    if review.owner_response is None:
        return Success(ReviewChange(review_id=review.id))
    return Success(
        ReviewChange(
            review_id=review.id,
            changes={"owner_response": None, "owner_responded_at": None},
        )
    )


def wilson_score(count: int, mean: float) -> float:
    """Lower bound of the Wilson interval, mapped back onto the 1-5 scale."""
    if count == 0:
        return 0.0
    z = WILSON_Z
    phat = (mean - 1) / 4
    n = count
    score = (
        phat + z * z / (2 * n) - z * math.sqrt((phat * (1 - phat) + z * z / (4 * n)) / n)
    ) / (1 + z * z / n)
    return max(0.0, score * 4 + 1)


def aggregate_rating(reviews: Iterable[Any]) -> RatingSummary:
    """
    Count, mean and 1-5 histogram over the approved reviews in ``reviews``.

    Accepts anything with ``rating`` and ``is_approved`` attributes, so both
    ``ReviewState`` and ORM rows work.
    """
    distribution = {star: 0 for star in range(1, 6)}
    total = 0
    count = 0
    for review in reviews:
        if not review.is_approved:
            continue
        rating = int(review.rating)
        if rating in distribution:
            distribution[rating] += 1
        total += rating
        count += 1

    if count == 0:
        return RatingSummary(count=0, mean=None, distribution=distribution)

    mean = total / count
    return RatingSummary(
        count=count,
        mean=mean,
        distribution=distribution,
        weighted_score=round(wilson_score(count, mean), 4),
    )
