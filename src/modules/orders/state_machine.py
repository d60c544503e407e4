"""Slice status state machine and aggregate status derivation."""

from __future__ import annotations

from typing import Iterable

from modules.orders.constants import (
    FULFILMENT_SEQUENCE,
    VALID_TRANSITIONS,
    OrderStatus,
)
from modules.orders.exceptions import InvalidTransition


def can_transition(current: str, target: str) -> bool:
    return target in VALID_TRANSITIONS.get(current, set())


def ensure_transition(current: str, target: str, scope: str = "order") -> None:
    """Raise ``InvalidTransition`` unless ``current -> target`` is a declared edge."""
    if target not in OrderStatus.values:
        raise InvalidTransition(
            f"Unknown status {target!r} for {scope}.",
            current=current,
            target=target,
        )
    if not can_transition(current, target):
        raise InvalidTransition(
            f"Cannot transition {scope} from {current} to {target}.",
            current=current,
            target=target,
        )


def derive_aggregate_status(statuses: Iterable[str]) -> str:
    """Order status from its slice statuses.

    - every slice cancelled: ``cancelled``
    - any slice awaiting a cancellation decision: ``cancellation_requested``
    - otherwise the least advanced fulfilment status among active slices
    """
    statuses = list(statuses)
    if not statuses:
        return OrderStatus.PENDING

    active = [status for status in statuses if status != OrderStatus.CANCELLED]
    if not active:
        return OrderStatus.CANCELLED
    if OrderStatus.CANCELLATION_REQUESTED in active:
        return OrderStatus.CANCELLATION_REQUESTED

    ranked = [status for status in active if status in FULFILMENT_SEQUENCE]
    if not ranked:
        return OrderStatus.PENDING
    return min(ranked, key=FULFILMENT_SEQUENCE.index)
