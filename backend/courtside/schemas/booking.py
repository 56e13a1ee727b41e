"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Optional
from pydantic import BaseModel, Field

from courtside.domain.booking_lifecycle import BookingStatus, PaymentStatus, RefundStatus


class BookingCancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class AdminBookingUpdate(BaseModel):
    status: BookingStatus
    admin_note: Optional[str] = Field(None, max_length=500)
    notify_user: bool = True
    refund_amount: Optional[Decimal] = Field(None, ge=0)


class AdminForceCancel(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)
    refund_amount: Optional[Decimal] = Field(None, ge=0)


class PaymentResponse(BaseModel):
    id: int
    status: PaymentStatus
    amount: Decimal
    total_amount: Decimal
    currency: str
    method: Optional[str]
    completed_at: Optional[datetime]

    model_config = {"from_attributes": True}


class RefundResponse(BaseModel):
    id: int
    booking_id: int
    payment_id: int
    amount: Decimal
    original_amount: Decimal
    refund_percentage: int
    reason: Optional[str]
    status: RefundStatus
    created_at: datetime

    model_config = {"from_attributes": True}


class BookingResponse(BaseModel):
    id: int
    user_id: int
    court_id: int
    booking_date: date
    start_time: time
    end_time: time
    total_amount: Decimal
    status: BookingStatus
    confirmed_at: Optional[datetime]
    cancelled_at: Optional[datetime]
    cancellation_reason: Optional[str]
    created_at: datetime

    model_config = {"from_attributes": True}


class BookingTimingResponse(BaseModel):
    is_past: bool
    is_upcoming: bool
    hours_until_booking: int
    can_cancel: bool
    can_modify: bool


class RefundInfoResponse(BaseModel):
    eligible: bool
    percentage: int
    amount: Decimal
    policy: str


class BookingDetailResponse(BaseModel):
    booking: BookingResponse
    payment: Optional[PaymentResponse]
    refunds: list[RefundResponse]
    timing: BookingTimingResponse
    refund_info: Optional[RefundInfoResponse]


class BookingTransitionResponse(BaseModel):
    success: bool = True
    message: str
    booking: BookingResponse
    refund: Optional[RefundResponse] = None
    warnings: list[str] = []
    action: dict[str, Any] = {}


class AutoCompleteResponse(BaseModel):
    completed: list[int]
    skipped: int
