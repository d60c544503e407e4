"""Unit tests for the slice state machine and aggregate status derivation."""

from __future__ import annotations

import pytest

from modules.orders.constants import (
    FULFILMENT_SEQUENCE,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    OrderStatus,
)
from modules.orders.exceptions import InvalidTransition
from modules.orders.state_machine import (
    can_transition,
    derive_aggregate_status,
    ensure_transition,
)

pytestmark = pytest.mark.unit


class TestTransitionTable:
    def test_every_status_has_an_entry(self):
        assert set(VALID_TRANSITIONS) == set(OrderStatus.values)

    def test_terminal_states_have_no_exits(self):
        for status in TERMINAL_STATES:
            assert VALID_TRANSITIONS[status] == set()

    @pytest.mark.parametrize(
        "current,target",
        list(zip(FULFILMENT_SEQUENCE, FULFILMENT_SEQUENCE[1:])),
    )
    def test_fulfilment_edges(self, current, target):
        assert can_transition(current, target)

    @pytest.mark.parametrize("current", FULFILMENT_SEQUENCE[:-1])
    def test_every_pre_delivered_status_can_request_cancellation(self, current):
        assert can_transition(current, OrderStatus.CANCELLATION_REQUESTED)

    def test_skipping_a_step_is_not_allowed(self):
        assert not can_transition(OrderStatus.PENDING, OrderStatus.SHIPPED_SELLER)

    def test_no_backwards_moves(self):
        assert not can_transition(OrderStatus.SHIPPED_SELLER, OrderStatus.PROCESSING)

    def test_delivered_cannot_be_cancelled(self):
        assert not can_transition(OrderStatus.DELIVERED, OrderStatus.CANCELLATION_REQUESTED)

    def test_cancellation_rejected_is_never_a_resting_state(self):
        assert VALID_TRANSITIONS[OrderStatus.CANCELLATION_REJECTED] == set()
        assert not any(
            OrderStatus.CANCELLATION_REJECTED in targets
            for targets in VALID_TRANSITIONS.values()
        )


class TestEnsureTransition:
    def test_valid_edge_passes(self):
        ensure_transition(OrderStatus.PENDING, OrderStatus.PROCESSING)

    def test_invalid_edge_names_both_statuses_and_scope(self):
        with pytest.raises(InvalidTransition) as exc_info:
            ensure_transition(
                OrderStatus.DELIVERED, OrderStatus.PROCESSING, scope="slice v-1"
            )

        message = str(exc_info.value)
        assert "delivered" in message
        assert "processing" in message
        assert "slice v-1" in message
        assert exc_info.value.context == {"current": "delivered", "target": "processing"}

    def test_unknown_status_rejected(self):
        with pytest.raises(InvalidTransition, match="Unknown status"):
            ensure_transition(OrderStatus.PENDING, "teleported")


class TestDeriveAggregateStatus:
    def test_single_slice_mirrors_slice(self):
        assert derive_aggregate_status([OrderStatus.SHIPPED_SELLER]) == OrderStatus.SHIPPED_SELLER

    def test_least_advanced_slice_wins(self):
        statuses = [OrderStatus.DELIVERED, OrderStatus.PROCESSING, OrderStatus.READY_TO_SHIP]
        assert derive_aggregate_status(statuses) == OrderStatus.PROCESSING

    def test_cancelled_slices_are_ignored(self):
        statuses = [OrderStatus.CANCELLED, OrderStatus.SHIPPED_SELLER]
        assert derive_aggregate_status(statuses) == OrderStatus.SHIPPED_SELLER

    def test_all_cancelled(self):
        statuses = [OrderStatus.CANCELLED, OrderStatus.CANCELLED]
        assert derive_aggregate_status(statuses) == OrderStatus.CANCELLED

    def test_pending_cancellation_dominates(self):
        statuses = [OrderStatus.DELIVERED, OrderStatus.CANCELLATION_REQUESTED]
        assert derive_aggregate_status(statuses) == OrderStatus.CANCELLATION_REQUESTED

    def test_delivered_only_when_every_active_slice_delivered(self):
        statuses = [OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.DELIVERED]
        assert derive_aggregate_status(statuses) == OrderStatus.DELIVERED

    def test_no_slices(self):
        assert derive_aggregate_status([]) == OrderStatus.PENDING
