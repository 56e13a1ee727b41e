"""
Tests for the side-effect executor: each effect runs in its own savepoint and
a failure is reported, not raised.
"""

from decimal import Decimal

import pytest

from courtside.domain.booking_lifecycle import (
    NotificationCreate,
    NotificationType,
    RefundCreate,
    SideEffectKind,
)
from courtside.domain.results import ErrorKind
from courtside.models.notification import Notification
from courtside.models.payment import Refund
from courtside.services.side_effects import describe, execute_side_effects


class FakeSavepoint:
    def __init__(self, session):
        self.session = session

    async def __aenter__(self):
        self.session.savepoints += 1
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if exc_type is not None:
            self.session.rolled_back += 1
        return False


class FakeSession:
    """Just enough of AsyncSession for the executor."""

    def __init__(self):
        self.added = []
        self.savepoints = 0
        self.rolled_back = 0

    def begin_nested(self):
        return FakeSavepoint(self)

    def add(self, obj):
        self.added.append(obj)

    async def flush(self):
        pass


REFUND = RefundCreate(
    payment_id=11,
    booking_id=101,
    user_id=7,
    amount=Decimal("500"),
    original_amount=Decimal("1000"),
    refund_percentage=50,
    reason="Admin cancellation by Ada",
    notes={"processed_by": 1},
)
NOTIFICATION = NotificationCreate(
    user_id=7,
    type=NotificationType.BOOKING_CANCELLED,
    title="Booking cancelled",
    message="Your booking has been cancelled by admin.",
    data={"booking_id": 101},
)


@pytest.mark.asyncio
async def test_all_effects_applied_in_order():
    db = FakeSession()
    report = await execute_side_effects(db, (REFUND, NOTIFICATION), booking_id=101)

    assert report.failures == []
    assert report.warnings == []
    assert db.savepoints == 2
    refund, notification = db.added
    assert isinstance(refund, Refund)
    assert refund.amount == Decimal("500")
    assert isinstance(notification, Notification)
    assert report.first(Refund) is refund


@pytest.mark.asyncio
async def test_failed_refund_does_not_stop_notification():
    async def broken_refund(db, effect):
        raise RuntimeError("refunds table locked")

    async def record_notification(db, effect):
        db.add(effect)
        return effect

    db = FakeSession()
    report = await execute_side_effects(
        db,
        (REFUND, NOTIFICATION),
        booking_id=101,
        handlers={
            SideEffectKind.REFUND_CREATE: broken_refund,
            SideEffectKind.NOTIFICATION_CREATE: record_notification,
        },
    )

    assert db.rolled_back == 1
    assert db.added == [NOTIFICATION]
    (failure,) = report.failures
    assert failure.kind == SideEffectKind.REFUND_CREATE
    assert failure.error == "refunds table locked"
    assert failure.error_kind == ErrorKind.SIDE_EFFECT_FAILURE
    assert failure.params["booking_id"] == 101
    assert failure.params["amount"] == "500"
    assert report.first(Refund) is None
    assert "manual reconciliation" in report.warnings[0]


def test_describe_is_json_friendly():
    params = describe(NOTIFICATION)
    assert params["type"] == "BOOKING_CANCELLED"
    assert params["data"] == {"booking_id": 101}
