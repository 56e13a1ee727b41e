"""
Booking lifecycle engine.

STATE MACHINE
=============

    PENDING   -> CONFIRMED   (stamps confirmed_at)
    CONFIRMED -> PENDING
    PENDING   -> CANCELLED   (refund only if the payment is COMPLETED)
    CONFIRMED -> CANCELLED   (refund by time policy, or admin override amount)
    CONFIRMED -> COMPLETED   (explicit, or automatic once the start has passed)
    *         -> same status (accepted, nothing happens)
    CANCELLED and COMPLETED are terminal.

REFUND POLICY
=============

Whole hours until the booking starts, floored:

    hours >= 24       -> 100%
    2 <= hours < 24   -> 50%
    hours < 2         -> 0%

The engine does no I/O. ``transition`` returns the new status, the fields to
write and an ordered tuple of side-effect descriptors (refund row, notification
row) that the service layer executes after committing the status change.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar, Mapping, Optional, Union

from courtside.domain.actors import Actor, UserRole
from courtside.domain.results import ErrorKind, Failure, Result, Success, round_half_up


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class RefundStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class NotificationType(str, Enum):
    BOOKING_CONFIRMED = "BOOKING_CONFIRMED"
    BOOKING_CANCELLED = "BOOKING_CANCELLED"
    BOOKING_REMINDER = "BOOKING_REMINDER"
    SYSTEM_ALERT = "SYSTEM_ALERT"
    REVIEW_POSTED = "REVIEW_POSTED"
    REVIEW_RESPONSE = "REVIEW_RESPONSE"
    PAYMENT_SUCCESS = "PAYMENT_SUCCESS"
    PAYMENT_FAILED = "PAYMENT_FAILED"
    REFUND_PROCESSED = "REFUND_PROCESSED"


class SideEffectKind(str, Enum):
    REFUND_CREATE = "REFUND_CREATE"
    NOTIFICATION_CREATE = "NOTIFICATION_CREATE"


FULL_REFUND_HOURS = 24
PARTIAL_REFUND_HOURS = 2
PARTIAL_REFUND_PERCENTAGE = 50

TERMINAL_STATUSES = frozenset({BookingStatus.CANCELLED, BookingStatus.COMPLETED})

ALLOWED_TRANSITIONS: Mapping[BookingStatus, frozenset] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset(
        {BookingStatus.PENDING, BookingStatus.CANCELLED, BookingStatus.COMPLETED}
    ),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
}


@dataclass(frozen=True)
class PaymentState:
    id: int
    status: PaymentStatus
    total_amount: Decimal


@dataclass(frozen=True)
class BookingState:
    id: int
    user_id: int
    status: BookingStatus
    booking_date: date
    start_time: time
    total_amount: Decimal
    payment: Optional[PaymentState] = None
    facility_name: str = ""
    confirmed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None

    def starts_at(self, now: datetime) -> datetime:
        """Scheduled start, read in the same timezone as ``now``."""
        start = datetime.combine(self.booking_date, self.start_time)
        if start.tzinfo is None and now.tzinfo is not None:
            start = start.replace(tzinfo=now.tzinfo)
        return start


@dataclass(frozen=True)
class RefundEligibility:
    eligible: bool
    percentage: int
    amount: Decimal
    policy: str
    hours_until_booking: int

    def to_payload(self) -> dict[str, Any]:
        return {
            "eligible": self.eligible,
            "percentage": self.percentage,
            "amount": self.amount,
            "policy": self.policy,
        }


@dataclass(frozen=True)
class BookingTiming:
    is_past: bool
    is_upcoming: bool
    hours_until_booking: int
    can_cancel: bool
    can_modify: bool


@dataclass(frozen=True)
class RefundCreate:
    payment_id: int
    booking_id: int
    user_id: int
    amount: Decimal
    original_amount: Decimal
    refund_percentage: int
    reason: str
    notes: Mapping[str, Any]
    status: RefundStatus = RefundStatus.PENDING
    kind: ClassVar[SideEffectKind] = SideEffectKind.REFUND_CREATE


@dataclass(frozen=True)
class NotificationCreate:
    user_id: int
    type: NotificationType
    title: str
    message: str
    data: Mapping[str, Any]
    kind: ClassVar[SideEffectKind] = SideEffectKind.NOTIFICATION_CREATE


SideEffect = Union[RefundCreate, NotificationCreate]


@dataclass(frozen=True)
class TransitionContext:
    actor: Actor
    now: datetime
    reason: Optional[str] = None
    refund_amount: Optional[Decimal] = None
    notify_user: bool = True
    automatic: bool = False
    force: bool = False


@dataclass(frozen=True)
class TransitionOutcome:
    booking_id: int
    previous_status: BookingStatus
    new_status: BookingStatus
    changes: Mapping[str, Any] = field(default_factory=dict)
    side_effects: tuple = ()
    refund_eligibility: Optional[RefundEligibility] = None

    @property
    def changed(self) -> bool:
        return bool(self.changes)

    @property
    def refund(self) -> Optional[RefundCreate]:
        for effect in self.side_effects:
            if isinstance(effect, RefundCreate):
                return effect
        return None


def hours_until(booking: BookingState, now: datetime) -> int:
    delta = booking.starts_at(now) - now
    return math.floor(delta.total_seconds() / 3600)


def refund_percentage_for(hours: int) -> tuple[int, str]:
    if hours >= FULL_REFUND_HOURS:
        return 100, "Full refund (24+ hours)"
    if hours >= PARTIAL_REFUND_HOURS:
        return PARTIAL_REFUND_PERCENTAGE, "Partial refund (2-24 hours)"
    return 0, "No refund (< 2 hours)"


def compute_refund_eligibility(
    booking: BookingState,
    payment: PaymentState,
    now: datetime,
) -> RefundEligibility:
    """
    Refund owed if ``booking`` were cancelled at ``now``.

    Meant for CONFIRMED bookings with a COMPLETED payment; the caller decides
    whether those preconditions hold (see ``refund_info``).
    """
    hours = hours_until(booking, now)
    percentage, policy = refund_percentage_for(hours)
    amount = round_half_up(Decimal(payment.total_amount) * percentage / 100)
    return RefundEligibility(
        eligible=percentage > 0,
        percentage=percentage,
        amount=amount,
        policy=policy,
        hours_until_booking=hours,
    )


def refund_info(booking: BookingState, now: datetime) -> Optional[RefundEligibility]:
    payment = booking.payment
    if booking.status != BookingStatus.CONFIRMED or payment is None:
        return None
    if payment.status != PaymentStatus.COMPLETED:
        return None
    return compute_refund_eligibility(booking, payment, now)


def booking_timing(booking: BookingState, now: datetime) -> BookingTiming:
    starts_at = booking.starts_at(now)
    is_past = starts_at < now
    return BookingTiming(
        is_past=is_past,
        is_upcoming=starts_at > now,
        hours_until_booking=hours_until(booking, now),
        can_cancel=booking.status not in TERMINAL_STATUSES,
        can_modify=not is_past and booking.status != BookingStatus.COMPLETED,
    )


def transition(
    booking: BookingState,
    requested: BookingStatus,
    context: TransitionContext,
) -> Result[TransitionOutcome]:
    current = booking.status
    unchanged = TransitionOutcome(
        booking_id=booking.id, previous_status=current, new_status=current
    )

    if requested == current:
        return Success(unchanged)

    if requested not in ALLOWED_TRANSITIONS[current]:
        if current in TERMINAL_STATUSES:
            message = f"Booking is already {current.value.lower()}"
        else:
            message = f"Cannot move a {current.value.lower()} booking to {requested.value.lower()}"
        return Failure(
            ErrorKind.INVALID_TRANSITION,
            message,
            {"booking_id": booking.id, "current_status": current.value, "requested_status": requested.value},
        )

    now = context.now
    if (
        requested == BookingStatus.COMPLETED
        and context.automatic
        and not booking.starts_at(now) < now
    ):
        return Success(unchanged)

    changes: dict[str, Any] = {"status": requested}
    side_effects: list = []
    eligibility = None
    refund = None

    if requested == BookingStatus.CONFIRMED:
        changes["confirmed_at"] = now

    elif requested == BookingStatus.CANCELLED:
        changes["cancelled_at"] = now
        changes["cancellation_reason"] = context.reason or _default_cancellation_reason(context)

        payment = booking.payment
        if payment is not None and payment.status == PaymentStatus.COMPLETED:
            if context.refund_amount is None:
                eligibility = compute_refund_eligibility(booking, payment, now)
            planned = _plan_refund(booking, payment, context, eligibility)
            if not planned.ok:
                return planned
            refund = planned.value
            side_effects.append(refund)

    if context.notify_user:
        side_effects.append(_notification(booking, requested, context, refund))

    return Success(
        TransitionOutcome(
            booking_id=booking.id,
            previous_status=current,
            new_status=requested,
            changes=changes,
            side_effects=tuple(side_effects),
            refund_eligibility=eligibility,
        )
    )


def self_cancel(booking: BookingState, context: TransitionContext) -> Result[TransitionOutcome]:
    """Cancellation requested from the booking page rather than the admin console."""
    if booking.status == BookingStatus.CANCELLED:
        return Failure(ErrorKind.INVALID_TRANSITION, "Booking is already cancelled")
    if booking.status == BookingStatus.COMPLETED:
        return Failure(ErrorKind.INVALID_TRANSITION, "Cannot cancel a completed booking")
    if booking.starts_at(context.now) <= context.now:
        return Failure(
            ErrorKind.INVALID_TRANSITION,
            "Cannot cancel a booking that has already started or passed",
        )
    return transition(booking, BookingStatus.CANCELLED, context)


def _plan_refund(
    booking: BookingState,
    payment: PaymentState,
    context: TransitionContext,
    eligibility: Optional[RefundEligibility],
) -> Result[RefundCreate]:
    original = Decimal(payment.total_amount)

    if eligibility is None:
        amount = Decimal(context.refund_amount)
        if amount < 0 or amount > original:
            return Failure(
                ErrorKind.INVALID_REFUND_AMOUNT,
                f"Refund amount must be between 0 and {original}",
                {"refund_amount": str(amount), "original_amount": str(original)},
            )
        policy = "Admin override"
    else:
        amount = eligibility.amount
        policy = eligibility.policy

    percentage = int(round_half_up(amount / original * 100)) if original > 0 else 0

    notes: dict[str, Any] = {
        "processed_by": context.actor.id,
        "processed_by_name": context.actor.name,
        "timestamp": context.now.isoformat(),
        "policy": policy,
    }
    if context.force:
        notes["force_cancel"] = True

    return Success(
        RefundCreate(
            payment_id=payment.id,
            booking_id=booking.id,
            user_id=booking.user_id,
            amount=amount,
            original_amount=original,
            refund_percentage=percentage,
            reason=context.reason or _default_refund_reason(context),
            notes=notes,
        )
    )


def _notification(
    booking: BookingState,
    status: BookingStatus,
    context: TransitionContext,
    refund: Optional[RefundCreate],
) -> NotificationCreate:
    actor = context.actor
    if status == BookingStatus.CONFIRMED:
        kind = NotificationType.BOOKING_CONFIRMED
    elif status == BookingStatus.CANCELLED:
        kind = NotificationType.BOOKING_CANCELLED
    else:
        kind = NotificationType.SYSTEM_ALERT

    venue = booking.facility_name or "your court"
    verb = status.value.lower()
    if actor.is_system:
        message = f"Your booking for {venue} has been {verb}."
    else:
        message = f"Your booking for {venue} has been {verb} by {_actor_label(actor)}."

    data: dict[str, Any] = {
        "booking_id": booking.id,
        "actor_id": actor.id,
        "actor_name": actor.name,
        "note": context.reason,
    }
    if actor.is_admin:
        data["admin_id"] = actor.id
        data["admin_name"] = actor.name
    if status == BookingStatus.CANCELLED:
        data["refund_amount"] = float(refund.amount) if refund else 0

    return NotificationCreate(
        user_id=booking.user_id,
        type=kind,
        title=f"Booking {verb}",
        message=message,
        data=data,
    )


def _actor_label(actor: Actor) -> str:
    if actor.is_admin:
        return "admin"
    if actor.role == UserRole.FACILITY_OWNER:
        return "the venue"
    return "you"


def _default_cancellation_reason(context: TransitionContext) -> str:
    actor = context.actor
    if actor.is_admin:
        prefix = "Force cancelled" if context.force else "Cancelled"
        return f"{prefix} by admin: {actor.name}"
    if actor.role == UserRole.FACILITY_OWNER:
        return f"Cancelled by facility owner: {actor.name}"
    if actor.is_system:
        return "Cancelled by system"
    return "Cancelled by user"


def _default_refund_reason(context: TransitionContext) -> str:
    actor = context.actor
    if actor.is_admin:
        if context.force:
            return f"Force cancellation by admin {actor.name}"
        return f"Admin cancellation by {actor.name}"
    if actor.role == UserRole.FACILITY_OWNER:
        return f"Cancellation by facility owner {actor.name}"
    return "Cancelled by user"
