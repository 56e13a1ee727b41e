"""
Pydantic schemas for review moderation, votes, flags and owner responses.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, model_validator

from courtside.domain.review_moderation import ModerationAction


class ModerationRequest(BaseModel):
    action: ModerationAction
    reason: Optional[str] = Field(None, max_length=500)


class FlagRequest(BaseModel):
    reason: str = Field(..., min_length=3, max_length=100)
    details: Optional[str] = Field(None, max_length=500)

    @property
    def full_reason(self) -> str:
        return f"{self.reason}: {self.details}" if self.details else self.reason


class OwnerResponseRequest(BaseModel):
    response: str = Field(..., min_length=1, max_length=1000)

    @model_validator(mode="after")
    def strip_response(self):
        self.response = self.response.strip()
        if not self.response:
            raise ValueError("Response cannot be blank")
        return self


class ReviewResponse(BaseModel):
    id: int
    user_id: int
    facility_id: int
    rating: int
    title: Optional[str]
    comment: Optional[str]
    is_approved: bool
    is_flagged: bool
    flag_reason: Optional[str]
    helpful_count: int
    owner_response: Optional[str]
    owner_responded_at: Optional[datetime]
    created_at: datetime

    model_config = {"from_attributes": True}


class HelpfulVoteResponse(BaseModel):
    review_id: int
    helpful_count: int
    voted: bool


class RatingSummaryResponse(BaseModel):
    facility_id: int
    average_rating: Optional[float]
    total_reviews: int
    distribution: dict[str, int]
    weighted_score: Optional[float]
    cached: bool = False


class PendingReviewsResponse(BaseModel):
    reviews: list[ReviewResponse]
    total: int
    page: int
    page_size: int


class ReviewFlagResponse(BaseModel):
    id: int
    reporter_id: int
    reason: str
    created_at: datetime

    model_config = {"from_attributes": True}


class FlaggedReviewResponse(ReviewResponse):
    flagged_by: Optional[int]
    flagged_at: Optional[datetime]
    flags: list[ReviewFlagResponse]


class FlaggedReviewsResponse(BaseModel):
    reviews: list[FlaggedReviewResponse]
    total: int
    page: int
    page_size: int
