"""
Admin booking endpoints: inspect, change status, force-cancel, auto-complete.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from courtside.core.security import require_admin
from courtside.db.session import get_db
from courtside.models.user import User
from courtside.schemas.booking import (
    AdminBookingUpdate,
    AdminForceCancel,
    AutoCompleteResponse,
    BookingDetailResponse,
    BookingTransitionResponse,
)
from courtside.services.booking_service import (
    BookingTransition,
    admin_force_cancel,
    admin_update_status,
    auto_complete_bookings,
    booking_detail,
    booking_now,
    get_booking,
)

router = APIRouter(prefix="/admin/bookings", tags=["Admin: Bookings"])


def _transition_response(applied: BookingTransition, action: str, admin: User) -> BookingTransitionResponse:
    outcome = applied.outcome
    if outcome.changed:
        message = f"Booking status updated from {outcome.previous_status.value} to {outcome.new_status.value}"
    else:
        message = f"Booking already {outcome.new_status.value}"
    return BookingTransitionResponse(
        message=message,
        booking=applied.booking,
        refund=applied.refund,
        warnings=applied.report.warnings,
        action={
            "type": action,
            "previous_status": outcome.previous_status.value,
            "new_status": outcome.new_status.value,
            "admin_id": admin.id,
            "admin_name": admin.name,
        },
    )


@router.post("/auto-complete", response_model=AutoCompleteResponse)
async def auto_complete(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Complete confirmed bookings whose start time has passed."""
    completed, skipped = await auto_complete_bookings(db)
    return AutoCompleteResponse(completed=completed, skipped=skipped)


@router.get("/{booking_id}", response_model=BookingDetailResponse)
async def get_booking_admin(
    booking_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    booking = await get_booking(db, booking_id)
    return booking_detail(booking, booking_now())


@router.put("/{booking_id}", response_model=BookingTransitionResponse)
async def update_booking_status(
    booking_id: int,
    data: AdminBookingUpdate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    Move a booking to another status. Cancelling a paid booking schedules a
    refund; ``refund_amount`` overrides the policy amount.
    """
    applied = await admin_update_status(db, booking_id, data, admin)
    return _transition_response(applied, "status_update", admin)


@router.delete("/{booking_id}", response_model=BookingTransitionResponse)
async def force_cancel_booking(
    booking_id: int,
    data: AdminForceCancel | None = None,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Force-cancel a booking. The user is always notified."""
    applied = await admin_force_cancel(db, booking_id, data or AdminForceCancel(), admin)
    response = _transition_response(applied, "force_cancel", admin)
    response.message = "Booking force-cancelled"
    return response
