"""
Discriminated results returned by the booking and review engines.

Engines never raise for business-rule violations. They return either
``Success(value)`` or ``Failure(kind, message)`` and leave the mapping
to HTTP status codes to the API layer (see courtside.core.errors).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Any, ClassVar, Generic, TypeVar, Union

T = TypeVar("T")


class ErrorKind(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    INVALID_REFUND_AMOUNT = "INVALID_REFUND_AMOUNT"
    MISSING_REASON = "MISSING_REASON"
    UNAUTHORIZED = "UNAUTHORIZED"
    NOT_VENUE_OWNER = "NOT_VENUE_OWNER"
    CANNOT_VOTE_OWN_REVIEW = "CANNOT_VOTE_OWN_REVIEW"
    ALREADY_VOTED = "ALREADY_VOTED"
    NOT_VOTED = "NOT_VOTED"
    ALREADY_RESPONDED = "ALREADY_RESPONDED"
    NO_RESPONSE_TO_UPDATE = "NO_RESPONSE_TO_UPDATE"
    SIDE_EFFECT_FAILURE = "SIDE_EFFECT_FAILURE"


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T
    ok: ClassVar[bool] = True


@dataclass(frozen=True)
class Failure:
    kind: ErrorKind
    message: str
    details: dict[str, Any] = field(default_factory=dict)
    ok: ClassVar[bool] = False


Result = Union[Success[T], Failure]


def round_half_up(value: Decimal | float | int, places: int = 0) -> Decimal:
    """Round like a cashier: 0.5 always goes away from zero."""
    quantum = Decimal(1).scaleb(-places)
    return Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)
