"""
Booking endpoints for players: list, view with refund quote, cancel.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from courtside.core.security import get_current_user
from courtside.db.session import get_db
from courtside.models.user import User
from courtside.schemas.booking import (
    BookingCancelRequest,
    BookingDetailResponse,
    BookingResponse,
    BookingTransitionResponse,
)
from courtside.services.booking_service import (
    cancel_booking,
    get_user_booking_detail,
    get_user_bookings,
)

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.get("/", response_model=list[BookingResponse])
async def list_user_bookings(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get all bookings for the authenticated user."""
    return await get_user_bookings(db, user.id)


@router.get("/{booking_id}", response_model=BookingDetailResponse)
async def get_booking_detail(
    booking_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Booking with timing flags and the refund the user would get right now."""
    return await get_user_booking_detail(db, booking_id, user)


@router.post("/{booking_id}/cancel", response_model=BookingTransitionResponse)
async def cancel_booking_endpoint(
    booking_id: int,
    data: BookingCancelRequest | None = None,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Cancel a booking. The booker, the venue owner and admins may cancel.
    Paid bookings get a refund by time to start: full at 24h or more, half
    from 2h, nothing inside 2h.
    """
    applied = await cancel_booking(db, booking_id, user, data.reason if data else None)
    eligibility = applied.outcome.refund_eligibility
    return BookingTransitionResponse(
        message="Booking cancelled successfully",
        booking=applied.booking,
        refund=applied.refund,
        warnings=applied.report.warnings,
        action={
            "type": "cancel",
            "refund_policy": eligibility.policy if eligibility else None,
        },
    )
