"""
Prometheus metrics for the booking lifecycle and review moderation flows.
Exposed at the /metrics endpoint.
"""

from prometheus_client import Counter, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Booking lifecycle metrics
booking_transitions = Counter(
    'booking_transitions_total',
    'Booking status transition requests',
    ['from_status', 'to_status', 'result']  # result: applied, noop, rejected
)

refunds_scheduled = Counter(
    'refunds_scheduled_total',
    'Refund records scheduled by cancellations',
    ['source']  # policy, override
)

side_effect_executions = Counter(
    'side_effect_executions_total',
    'Side effects executed after a committed state change',
    ['kind', 'result']  # result: success, failure
)

# Review metrics
review_moderations = Counter(
    'review_moderation_total',
    'Review moderation actions',
    ['action', 'result']
)

helpful_votes = Counter(
    'review_helpful_votes_total',
    'Helpful vote operations',
    ['action', 'result']  # action: vote, unvote
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)


def metrics_endpoint() -> Response:
    """Render all registered metrics in the Prometheus text format."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_transition(from_status: str, to_status: str, result: str):
    """Record a transition request. Result: applied, noop, rejected"""
    booking_transitions.labels(from_status=from_status, to_status=to_status, result=result).inc()


def record_refund_scheduled(override: bool):
    refunds_scheduled.labels(source="override" if override else "policy").inc()


def record_side_effect(kind: str, success: bool):
    side_effect_executions.labels(kind=kind, result="success" if success else "failure").inc()


def record_moderation(action: str, result: str):
    review_moderations.labels(action=action, result=result).inc()


def record_helpful_vote(action: str, result: str):
    helpful_votes.labels(action=action, result=result).inc()


def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
