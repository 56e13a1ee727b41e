"""
Reviews, helpful votes and the flag history.

Key design decisions:
- One review per user per venue (uq_review_user_facility)
- One helpful vote per user per review (uq_helpful_vote); the insert is the
  atomic check, so two concurrent votes cannot both count
- The owner response is a column, so there is at most one per review
- Flags are appended to review_flags; reviews.flag_reason keeps the latest
"""

from sqlalchemy import (
    Column, Integer, String, Text, Boolean, DateTime, ForeignKey, UniqueConstraint, CheckConstraint, Index,
)
from sqlalchemy.orm import relationship

from courtside.db.base import Base, TimestampMixin


class Review(Base, TimestampMixin):
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    facility_id = Column(Integer, ForeignKey("facilities.id", ondelete="CASCADE"), nullable=False, index=True)
    rating = Column(Integer, nullable=False)
    title = Column(String(100), nullable=True)
    comment = Column(Text, nullable=True)
    is_verified_booking = Column(Boolean, default=False, nullable=False)

    is_approved = Column(Boolean, default=False, nullable=False)
    moderated_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    moderated_at = Column(DateTime(timezone=True), nullable=True)

    is_flagged = Column(Boolean, default=False, nullable=False)
    flag_reason = Column(Text, nullable=True)
    flagged_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    flagged_at = Column(DateTime(timezone=True), nullable=True)

    helpful_count = Column(Integer, default=0, nullable=False)

    owner_response = Column(Text, nullable=True)
    owner_responded_at = Column(DateTime(timezone=True), nullable=True)

    facility = relationship("Facility", lazy="selectin")
    flags = relationship(
        "ReviewFlag",
        back_populates="review",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ReviewFlag.created_at",
    )

    __table_args__ = (
        UniqueConstraint("user_id", "facility_id", name="uq_review_user_facility"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="check_review_rating_range"),
        CheckConstraint("helpful_count >= 0", name="check_review_helpful_non_negative"),
        # Venue page: approved reviews for one facility
        Index("ix_reviews_facility_approved", "facility_id", "is_approved"),
    )

    def __repr__(self) -> str:
        return f"<Review(id={self.id}, facility={self.facility_id}, rating={self.rating})>"


class ReviewHelpfulVote(Base, TimestampMixin):
    __tablename__ = "review_helpful_votes"

    id = Column(Integer, primary_key=True, index=True)
    review_id = Column(Integer, ForeignKey("reviews.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    __table_args__ = (
        UniqueConstraint("review_id", "user_id", name="uq_helpful_vote"),
    )


class ReviewFlag(Base, TimestampMixin):
    __tablename__ = "review_flags"

    id = Column(Integer, primary_key=True, index=True)
    review_id = Column(Integer, ForeignKey("reviews.id", ondelete="CASCADE"), nullable=False, index=True)
    reporter_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    reason = Column(Text, nullable=False)

    review = relationship("Review", back_populates="flags")
