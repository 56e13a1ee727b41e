"""
Tests for the booking lifecycle engine: refund tiers, transitions and the
side effects they emit. No database involved.
"""

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from courtside.domain.actors import Actor, UserRole
from courtside.domain.booking_lifecycle import (
    BookingState,
    BookingStatus,
    NotificationCreate,
    NotificationType,
    PaymentState,
    PaymentStatus,
    RefundCreate,
    TransitionContext,
    booking_timing,
    compute_refund_eligibility,
    refund_info,
    refund_percentage_for,
    self_cancel,
    transition,
)
from courtside.domain.results import ErrorKind

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)
ADMIN = Actor(id=1, name="Ada", role=UserRole.ADMIN)
PLAYER = Actor(id=7, name="Sam", role=UserRole.USER)


def make_booking(
    hours_until: float = 48,
    status: BookingStatus = BookingStatus.CONFIRMED,
    paid: bool = True,
    amount: str = "1000",
) -> BookingState:
    start = (NOW + timedelta(hours=hours_until)).replace(tzinfo=None)
    payment = None
    if paid:
        payment = PaymentState(id=11, status=PaymentStatus.COMPLETED, total_amount=Decimal(amount))
    return BookingState(
        id=101,
        user_id=PLAYER.id,
        status=status,
        booking_date=start.date(),
        start_time=start.time(),
        total_amount=Decimal(amount),
        payment=payment,
        facility_name="Riverside Sports Arena",
    )


def ctx(actor: Actor = ADMIN, **kwargs) -> TransitionContext:
    return TransitionContext(actor=actor, now=NOW, **kwargs)


# ==================== REFUND POLICY ====================

@pytest.mark.parametrize(
    "hours, expected",
    [(200, 100), (24, 100), (23, 50), (2, 50), (1, 0), (0, 0), (-5, 0)],
)
def test_refund_percentage_tiers(hours, expected):
    assert refund_percentage_for(hours)[0] == expected


def test_refund_boundaries_use_exact_start_time():
    payment = PaymentState(id=1, status=PaymentStatus.COMPLETED, total_amount=Decimal("1000"))

    exactly_24 = compute_refund_eligibility(make_booking(24), payment, NOW)
    exactly_2 = compute_refund_eligibility(make_booking(2), payment, NOW)
    just_under_2 = compute_refund_eligibility(make_booking(1.999), payment, NOW)

    assert exactly_24.percentage == 100
    assert exactly_2.percentage == 50
    assert just_under_2.percentage == 0
    assert just_under_2.eligible is False
    assert just_under_2.policy == "No refund (< 2 hours)"


def test_refund_amount_rounds_to_whole_units():
    payment = PaymentState(id=1, status=PaymentStatus.COMPLETED, total_amount=Decimal("999"))
    eligibility = compute_refund_eligibility(make_booking(10), payment, NOW)
    assert eligibility.amount == Decimal("500")
    assert eligibility.hours_until_booking == 10


def test_refund_info_only_for_confirmed_paid_bookings():
    assert refund_info(make_booking(48), NOW).percentage == 100
    assert refund_info(make_booking(48, status=BookingStatus.PENDING), NOW) is None
    assert refund_info(make_booking(48, paid=False), NOW) is None


def test_booking_timing_flags():
    upcoming = booking_timing(make_booking(5), NOW)
    assert upcoming.is_upcoming and not upcoming.is_past
    assert upcoming.hours_until_booking == 5
    assert upcoming.can_cancel and upcoming.can_modify

    past = booking_timing(make_booking(-3, status=BookingStatus.COMPLETED), NOW)
    assert past.is_past
    assert past.can_cancel is False
    assert past.can_modify is False


# ==================== TRANSITIONS ====================

@pytest.mark.parametrize("terminal", [BookingStatus.CANCELLED, BookingStatus.COMPLETED])
@pytest.mark.parametrize("target", list(BookingStatus))
def test_terminal_states_are_immutable(terminal, target):
    result = transition(make_booking(status=terminal), target, ctx())
    if target == terminal:
        assert result.ok
        assert not result.value.changed
        assert result.value.side_effects == ()
    else:
        assert not result.ok
        assert result.kind == ErrorKind.INVALID_TRANSITION


def test_pending_cannot_jump_to_completed():
    result = transition(make_booking(status=BookingStatus.PENDING), BookingStatus.COMPLETED, ctx())
    assert result.kind == ErrorKind.INVALID_TRANSITION


def test_confirm_stamps_confirmed_at_and_notifies():
    result = transition(make_booking(status=BookingStatus.PENDING), BookingStatus.CONFIRMED, ctx())
    outcome = result.value
    assert outcome.changes["confirmed_at"] == NOW
    (notification,) = outcome.side_effects
    assert notification.type == NotificationType.BOOKING_CONFIRMED
    assert notification.data["admin_id"] == ADMIN.id


def test_cancel_unpaid_pending_booking_emits_no_refund():
    booking = make_booking(status=BookingStatus.PENDING, paid=False)
    outcome = transition(booking, BookingStatus.CANCELLED, ctx(notify_user=False)).value
    assert outcome.new_status == BookingStatus.CANCELLED
    assert outcome.side_effects == ()
    assert outcome.refund is None


def test_cancel_with_pending_payment_emits_no_refund():
    pending = PaymentState(id=11, status=PaymentStatus.PENDING, total_amount=Decimal("1000"))
    booking = replace(make_booking(), payment=pending)
    outcome = transition(booking, BookingStatus.CANCELLED, ctx()).value
    assert outcome.refund is None
    assert all(isinstance(e, NotificationCreate) for e in outcome.side_effects)


def test_admin_cancel_23_hours_out_refunds_half():
    outcome = transition(make_booking(23), BookingStatus.CANCELLED, ctx()).value

    assert outcome.new_status == BookingStatus.CANCELLED
    assert outcome.changes["cancelled_at"] == NOW
    assert outcome.changes["cancellation_reason"] == "Cancelled by admin: Ada"

    refund, notification = outcome.side_effects
    assert isinstance(refund, RefundCreate)
    assert refund.refund_percentage == 50
    assert refund.amount == Decimal("500")
    assert refund.original_amount == Decimal("1000")
    assert refund.reason == "Admin cancellation by Ada"
    assert refund.notes["processed_by"] == ADMIN.id
    assert refund.notes["policy"] == "Partial refund (2-24 hours)"

    assert isinstance(notification, NotificationCreate)
    assert notification.type == NotificationType.BOOKING_CANCELLED
    assert notification.data["refund_amount"] == 500.0


def test_override_amount_sets_percentage_from_actual_amount():
    context = ctx(refund_amount=Decimal("250"), reason="Court flooded")
    outcome = transition(make_booking(48), BookingStatus.CANCELLED, context).value
    refund = outcome.refund
    assert refund.amount == Decimal("250")
    assert refund.refund_percentage == 25
    assert refund.reason == "Court flooded"
    assert outcome.changes["cancellation_reason"] == "Court flooded"
    assert outcome.refund_eligibility is None


@pytest.mark.parametrize("amount", ["-1", "1000.01"])
def test_override_amount_out_of_range_is_rejected(amount):
    result = transition(make_booking(48), BookingStatus.CANCELLED, ctx(refund_amount=Decimal(amount)))
    assert not result.ok
    assert result.kind == ErrorKind.INVALID_REFUND_AMOUNT


def test_force_cancel_marks_refund_notes():
    outcome = transition(make_booking(1), BookingStatus.CANCELLED, ctx(force=True)).value
    assert outcome.refund.notes["force_cancel"] is True
    assert outcome.refund.refund_percentage == 0
    assert outcome.refund.reason == "Force cancellation by admin Ada"
    assert outcome.changes["cancellation_reason"] == "Force cancelled by admin: Ada"


def test_notify_user_false_suppresses_notification():
    outcome = transition(make_booking(48), BookingStatus.CANCELLED, ctx(notify_user=False)).value
    assert len(outcome.side_effects) == 1
    assert isinstance(outcome.side_effects[0], RefundCreate)


def test_explicit_complete_of_future_booking_is_allowed():
    outcome = transition(make_booking(48), BookingStatus.COMPLETED, ctx()).value
    assert outcome.new_status == BookingStatus.COMPLETED
    assert outcome.changes == {"status": BookingStatus.COMPLETED}


def test_automatic_complete_of_future_booking_is_noop():
    context = ctx(actor=Actor.system(), automatic=True, notify_user=False)
    result = transition(make_booking(3), BookingStatus.COMPLETED, context)
    assert result.ok
    assert not result.value.changed
    assert result.value.new_status == BookingStatus.CONFIRMED


def test_automatic_complete_of_past_booking():
    context = ctx(actor=Actor.system(), automatic=True, notify_user=False)
    outcome = transition(make_booking(-2), BookingStatus.COMPLETED, context).value
    assert outcome.changed
    assert outcome.new_status == BookingStatus.COMPLETED
    assert outcome.side_effects == ()


def test_confirmed_can_return_to_pending():
    outcome = transition(make_booking(), BookingStatus.PENDING, ctx()).value
    assert outcome.new_status == BookingStatus.PENDING


# ==================== SELF CANCEL ====================

def test_self_cancel_uses_time_policy():
    outcome = self_cancel(make_booking(30), ctx(actor=PLAYER, notify_user=False)).value
    assert outcome.refund.refund_percentage == 100
    assert outcome.changes["cancellation_reason"] == "Cancelled by user"


def test_self_cancel_rejects_started_booking():
    result = self_cancel(make_booking(-1), ctx(actor=PLAYER))
    assert result.kind == ErrorKind.INVALID_TRANSITION


def test_self_cancel_rejects_already_cancelled():
    result = self_cancel(make_booking(status=BookingStatus.CANCELLED), ctx(actor=PLAYER))
    assert result.kind == ErrorKind.INVALID_TRANSITION
    assert result.message == "Booking is already cancelled"
