"""
Booking service: loads bookings, asks the lifecycle engine what should happen,
persists the decision and runs the resulting side effects.

CONCURRENCY STRATEGY: Conditional status update
================================================

Problem:
  An admin and the user cancel the same paid booking at the same moment.
  Both read status=CONFIRMED, both decide to cancel, both create a refund.
  Result: the user is refunded twice.

Solution:
  The status write is guarded by the status the decision was made from:

    UPDATE bookings SET status = :new, ...
    WHERE id = :id AND status = :status_we_read

  If rows_affected == 0 another request changed the booking first; we roll
  back and answer 409 without running any side effects. Only the request whose
  UPDATE matched goes on to create the refund and notification rows.

ORDER OF WRITES
===============

  1. status change, committed on its own (authoritative)
  2. side effects, each in a savepoint (best effort, see side_effects.py)
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from courtside.core.config import get_settings
from courtside.core.errors import raise_for_failure
from courtside.core.logging import get_logger
from courtside.core.metrics import record_refund_scheduled, record_transition
from courtside.core.security import actor_for
from courtside.db.base import utcnow
from courtside.domain.actors import Actor, UserRole
from courtside.domain.booking_lifecycle import (
    BookingState,
    BookingStatus,
    PaymentState,
    PaymentStatus,
    TransitionContext,
    TransitionOutcome,
    booking_timing,
    refund_info,
    self_cancel,
    transition,
)
from courtside.domain.results import ErrorKind, Failure
from courtside.models.booking import Booking
from courtside.models.payment import Refund
from courtside.models.user import User
from courtside.schemas.booking import AdminBookingUpdate, AdminForceCancel
from courtside.services.side_effects import SideEffectReport, execute_side_effects

logger = get_logger(__name__)
settings = get_settings()


@dataclass
class BookingTransition:
    booking: Booking
    outcome: TransitionOutcome
    report: SideEffectReport = field(default_factory=SideEffectReport)

    @property
    def refund(self) -> Optional[Refund]:
        return self.report.first(Refund)


def booking_now() -> datetime:
    """Current time in the timezone booking dates and times are written in."""
    if settings.BOOKING_TIMEZONE.upper() == "UTC":
        return datetime.now(timezone.utc)
    return datetime.now(ZoneInfo(settings.BOOKING_TIMEZONE))


def to_state(booking: Booking) -> BookingState:
    payment = None
    if booking.payment is not None:
        payment = PaymentState(
            id=booking.payment.id,
            status=PaymentStatus(booking.payment.status),
            total_amount=booking.payment.total_amount,
        )
    facility_name = ""
    if booking.court is not None and booking.court.facility is not None:
        facility_name = booking.court.facility.name
    return BookingState(
        id=booking.id,
        user_id=booking.user_id,
        status=BookingStatus(booking.status),
        booking_date=booking.booking_date,
        start_time=booking.start_time,
        total_amount=booking.total_amount,
        payment=payment,
        facility_name=facility_name,
        confirmed_at=booking.confirmed_at,
        cancelled_at=booking.cancelled_at,
        cancellation_reason=booking.cancellation_reason,
    )


async def get_booking(db: AsyncSession, booking_id: int) -> Booking:
    result = await db.execute(select(Booking).where(Booking.id == booking_id))
    booking = result.scalar_one_or_none()

    if not booking:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Booking not found",
        )
    return booking


async def get_user_bookings(db: AsyncSession, user_id: int) -> list[Booking]:
    """Get all bookings for a user, newest booking date first."""
    result = await db.execute(
        select(Booking)
        .where(Booking.user_id == user_id)
        .order_by(Booking.booking_date.desc(), Booking.start_time.desc())
    )
    return list(result.scalars().all())


def booking_detail(booking: Booking, now: datetime) -> dict:
    """Booking with timing flags and, when refundable, the current refund quote."""
    state = to_state(booking)
    timing = booking_timing(state, now)
    eligibility = refund_info(state, now)
    return {
        "booking": booking,
        "payment": booking.payment,
        "refunds": list(booking.refunds),
        "timing": asdict(timing),
        "refund_info": eligibility.to_payload() if eligibility else None,
    }


async def get_user_booking_detail(db: AsyncSession, booking_id: int, user: User) -> dict:
    booking = await get_booking(db, booking_id)
    is_venue_owner = booking.court is not None and booking.court.facility.owner_id == user.id
    if booking.user_id != user.id and not is_venue_owner and user.role != UserRole.ADMIN:
        # Other users' bookings are indistinguishable from missing ones
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found")
    return booking_detail(booking, booking_now())


async def apply_transition(
    db: AsyncSession,
    booking: Booking,
    requested: BookingStatus,
    context: TransitionContext,
    *,
    cancel_only: bool = False,
) -> BookingTransition:
    """
    Run the engine for ``booking`` and persist its decision.

    ``cancel_only`` routes through the self-service cancellation rules
    (no cancelling a booking that has already started).
    """
    booking_id = booking.id
    state = to_state(booking)
    if cancel_only:
        result = self_cancel(state, context)
    else:
        result = transition(state, requested, context)

    if not result.ok:
        record_transition(state.status.value, requested.value, "rejected")
        logger.warning(
            "booking_transition_rejected",
            booking_id=booking.id,
            from_status=state.status.value,
            to_status=requested.value,
            kind=result.kind.value,
        )
        raise_for_failure(result)

    outcome = result.value
    if not outcome.changed:
        record_transition(state.status.value, requested.value, "noop")
        logger.info(
            "booking_transition_noop",
            booking_id=booking.id,
            status=state.status.value,
            requested=requested.value,
            automatic=context.automatic,
        )
        return BookingTransition(booking=booking, outcome=outcome)

    update_result = await db.execute(
        update(Booking)
        .where(Booking.id == booking.id, Booking.status == state.status)
        .values(**outcome.changes, updated_at=utcnow())
    )
    if update_result.rowcount == 0:
        # rollback expires every loaded object, booking included
        await db.rollback()
        record_transition(state.status.value, requested.value, "conflict")
        logger.info("booking_transition_conflict", booking_id=booking_id, from_status=state.status.value)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Booking was modified by another request. Please reload and try again.",
        )

    await db.commit()
    await db.refresh(booking)
    record_transition(state.status.value, outcome.new_status.value, "applied")
    logger.info(
        "booking_transitioned",
        booking_id=booking.id,
        from_status=state.status.value,
        to_status=outcome.new_status.value,
        actor_id=context.actor.id,
        side_effects=[effect.kind.value for effect in outcome.side_effects],
    )

    refund = outcome.refund
    if refund is not None:
        record_refund_scheduled(override=context.refund_amount is not None)
        logger.info(
            "refund_scheduled",
            booking_id=booking.id,
            payment_id=refund.payment_id,
            amount=str(refund.amount),
            percentage=refund.refund_percentage,
        )

    report = await execute_side_effects(db, outcome.side_effects, booking_id=booking.id)
    return BookingTransition(booking=booking, outcome=outcome, report=report)


async def admin_update_status(
    db: AsyncSession,
    booking_id: int,
    data: AdminBookingUpdate,
    admin: User,
) -> BookingTransition:
    booking = await get_booking(db, booking_id)
    context = TransitionContext(
        actor=actor_for(admin),
        now=booking_now(),
        reason=data.admin_note,
        refund_amount=data.refund_amount,
        notify_user=data.notify_user,
    )
    return await apply_transition(db, booking, data.status, context)


async def admin_force_cancel(
    db: AsyncSession,
    booking_id: int,
    data: AdminForceCancel,
    admin: User,
) -> BookingTransition:
    """Cancel with a refund regardless of who owns the booking. Always notifies."""
    booking = await get_booking(db, booking_id)
    if booking.status == BookingStatus.CANCELLED:
        raise_for_failure(Failure(ErrorKind.INVALID_TRANSITION, "Booking is already cancelled"))

    context = TransitionContext(
        actor=actor_for(admin),
        now=booking_now(),
        reason=data.reason,
        refund_amount=data.refund_amount,
        notify_user=True,
        force=True,
    )
    return await apply_transition(db, booking, BookingStatus.CANCELLED, context)


async def cancel_booking(
    db: AsyncSession,
    booking_id: int,
    user: User,
    reason: Optional[str] = None,
) -> BookingTransition:
    """
    Cancel from the booking page. Allowed for the booker, the venue owner and
    admins; refunds follow the time-based policy.
    """
    booking = await get_booking(db, booking_id)

    is_booker = booking.user_id == user.id
    is_venue_owner = booking.court is not None and booking.court.facility.owner_id == user.id
    if not (is_booker or is_venue_owner or user.role == UserRole.ADMIN):
        raise_for_failure(Failure(ErrorKind.UNAUTHORIZED, "You can only cancel your own bookings"))

    actor = actor_for(user)
    if is_booker:
        actor = Actor(id=user.id, name=user.name, role=UserRole.USER)

    context = TransitionContext(actor=actor, now=booking_now(), reason=reason, notify_user=not is_booker)
    return await apply_transition(db, booking, BookingStatus.CANCELLED, context, cancel_only=True)


async def auto_complete_bookings(db: AsyncSession, now: Optional[datetime] = None) -> tuple[list[int], int]:
    """
    Mark confirmed bookings whose start has passed as COMPLETED.
    Bookings later today are left alone by the engine and counted as skipped.
    """
    now = now or booking_now()
    result = await db.execute(
        select(Booking)
        .where(
            Booking.status == BookingStatus.CONFIRMED,
            Booking.booking_date <= now.date(),
        )
        .order_by(Booking.booking_date.asc(), Booking.start_time.asc())
    )
    bookings = list(result.scalars().all())

    context = TransitionContext(actor=Actor.system(), now=now, notify_user=False, automatic=True)
    completed: list[int] = []
    skipped = 0
    for booking in bookings:
        # A conflict rollback in an earlier iteration expires everything loaded above
        await db.refresh(booking)
        try:
            applied = await apply_transition(db, booking, BookingStatus.COMPLETED, context)
        except HTTPException as e:
            if e.status_code != status.HTTP_409_CONFLICT:
                raise
            # Changed by someone else since we read it; next sweep sees the new state
            skipped += 1
            continue
        if applied.outcome.changed:
            completed.append(booking.id)
        else:
            skipped += 1

    logger.info("bookings_auto_completed", completed=len(completed), skipped=skipped)
    return completed, skipped
