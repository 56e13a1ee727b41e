"""
Executes the side effects returned by the booking lifecycle engine.

FAILURE ISOLATION
=================

The booking status change is committed before this module runs. Each side
effect then gets its own SAVEPOINT:

  - success: the row is flushed inside the savepoint and committed with the
    request
  - failure: only that savepoint is rolled back; the error is logged with the
    booking id and the effect's parameters, counted, and returned as a warning

A failing refund row never undoes the cancellation, and a failing refund does
not stop the notification that follows it.
"""

from dataclasses import dataclass, field, fields
from decimal import Decimal
from typing import Any, Awaitable, Callable, Mapping, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from courtside.core.logging import get_logger
from courtside.core.metrics import record_side_effect
from courtside.domain.booking_lifecycle import (
    NotificationCreate,
    RefundCreate,
    SideEffect,
    SideEffectKind,
)
from courtside.domain.results import ErrorKind
from courtside.models.notification import Notification
from courtside.models.payment import Refund

logger = get_logger(__name__)

SideEffectHandler = Callable[[AsyncSession, Any], Awaitable[Any]]

FAILURE_WARNINGS = {
    SideEffectKind.REFUND_CREATE: "Refund record could not be created and has been logged for manual reconciliation",
    SideEffectKind.NOTIFICATION_CREATE: "User notification could not be sent",
}


@dataclass
class SideEffectFailure:
    kind: SideEffectKind
    error: str
    params: Mapping[str, Any]
    error_kind: ErrorKind = ErrorKind.SIDE_EFFECT_FAILURE

    @property
    def warning(self) -> str:
        return FAILURE_WARNINGS.get(self.kind, f"{self.kind.value} failed")


@dataclass
class SideEffectReport:
    created: list = field(default_factory=list)
    failures: list[SideEffectFailure] = field(default_factory=list)

    @property
    def warnings(self) -> list[str]:
        return [f.warning for f in self.failures]

    def first(self, model: type) -> Optional[Any]:
        for obj in self.created:
            if isinstance(obj, model):
                return obj
        return None


async def create_refund(db: AsyncSession, effect: RefundCreate) -> Refund:
    refund = Refund(
        payment_id=effect.payment_id,
        booking_id=effect.booking_id,
        user_id=effect.user_id,
        amount=effect.amount,
        original_amount=effect.original_amount,
        refund_percentage=effect.refund_percentage,
        reason=effect.reason,
        status=effect.status,
        notes=dict(effect.notes),
    )
    db.add(refund)
    await db.flush()
    return refund


async def create_notification(db: AsyncSession, effect: NotificationCreate) -> Notification:
    notification = Notification(
        user_id=effect.user_id,
        type=effect.type,
        title=effect.title,
        message=effect.message,
        data=dict(effect.data),
    )
    db.add(notification)
    await db.flush()
    return notification


DEFAULT_HANDLERS: Mapping[SideEffectKind, SideEffectHandler] = {
    SideEffectKind.REFUND_CREATE: create_refund,
    SideEffectKind.NOTIFICATION_CREATE: create_notification,
}


def describe(effect: SideEffect) -> dict[str, Any]:
    """JSON-friendly parameters of a side effect, for logs."""
    described = {}
    for f in fields(effect):
        value = getattr(effect, f.name)
        if isinstance(value, Decimal):
            value = str(value)
        elif hasattr(value, "value"):
            value = value.value
        elif isinstance(value, Mapping):
            value = dict(value)
        described[f.name] = value
    return described


async def execute_side_effects(
    db: AsyncSession,
    effects: Sequence[SideEffect],
    *,
    booking_id: int,
    handlers: Optional[Mapping[SideEffectKind, SideEffectHandler]] = None,
) -> SideEffectReport:
    handlers = handlers or DEFAULT_HANDLERS
    report = SideEffectReport()

    for effect in effects:
        handler = handlers[effect.kind]
        try:
            async with db.begin_nested():
                created = await handler(db, effect)
        except Exception as e:
            failure = SideEffectFailure(kind=effect.kind, error=str(e), params=describe(effect))
            logger.error(
                "side_effect_failed",
                booking_id=booking_id,
                kind=effect.kind.value,
                params=failure.params,
                error_kind=failure.error_kind.value,
                error=failure.error,
                error_type=type(e).__name__,
            )
            record_side_effect(effect.kind.value, success=False)
            report.failures.append(failure)
            continue

        record_side_effect(effect.kind.value, success=True)
        report.created.append(created)
        logger.info("side_effect_applied", booking_id=booking_id, kind=effect.kind.value)

    return report
