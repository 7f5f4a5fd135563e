from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from services.api.app.models.enums import OrderStatus, UserRole
from services.api.app.services.errors import BadRequestError
from services.api.app.services.order_lifecycle import (
    apply_status,
    can_cancel,
    ensure_transition,
    next_statuses,
)

NOW = datetime(2026, 1, 15, 9, 30, tzinfo=timezone.utc)


def test_forward_chain_allows_skips_and_cancel() -> None:
    assert next_statuses(OrderStatus.PENDING) == {
        OrderStatus.CONFIRMED,
        OrderStatus.PROCESSING,
        OrderStatus.SHIPPED,
        OrderStatus.DELIVERED,
        OrderStatus.CANCELLED,
    }
    assert next_statuses(OrderStatus.SHIPPED) == {OrderStatus.DELIVERED, OrderStatus.CANCELLED}


def test_terminal_statuses() -> None:
    assert next_statuses(OrderStatus.DELIVERED) == {OrderStatus.RETURNED}
    assert next_statuses(OrderStatus.CANCELLED) == frozenset()
    assert next_statuses(OrderStatus.RETURNED) == frozenset()


@pytest.mark.parametrize(
    ("current", "target"),
    [
        (OrderStatus.CONFIRMED, OrderStatus.PENDING),
        (OrderStatus.DELIVERED, OrderStatus.PENDING),
        (OrderStatus.CANCELLED, OrderStatus.CONFIRMED),
        (OrderStatus.PENDING, OrderStatus.RETURNED),
    ],
)
def test_illegal_transitions_are_rejected(current: OrderStatus, target: OrderStatus) -> None:
    with pytest.raises(BadRequestError, match="Cannot change order status"):
        ensure_transition(current, target, UserRole.ADMIN)


def test_same_status_is_a_noop() -> None:
    ensure_transition(OrderStatus.CANCELLED, OrderStatus.CANCELLED, UserRole.STAFF)


@pytest.mark.parametrize(
    ("role", "status", "allowed"),
    [
        (UserRole.CUSTOMER, OrderStatus.PENDING, True),
        (UserRole.CUSTOMER, OrderStatus.CONFIRMED, False),
        (UserRole.STAFF, OrderStatus.PROCESSING, True),
        (UserRole.STAFF, OrderStatus.SHIPPED, False),
        (UserRole.SHOP_OWNER, OrderStatus.SHIPPED, True),
        (UserRole.ADMIN, OrderStatus.SHIPPED, True),
        (UserRole.ADMIN, OrderStatus.DELIVERED, False),
    ],
)
def test_cancellable_statuses_by_role(role: UserRole, status: OrderStatus, allowed: bool) -> None:
    assert can_cancel(status, role) is allowed


def test_staff_cannot_cancel_shipped_via_transition() -> None:
    with pytest.raises(BadRequestError, match="Cannot cancel"):
        ensure_transition(OrderStatus.SHIPPED, OrderStatus.CANCELLED, UserRole.STAFF)

    ensure_transition(OrderStatus.SHIPPED, OrderStatus.CANCELLED, UserRole.ADMIN)


def test_apply_status_stamps_timestamps() -> None:
    order = SimpleNamespace(status=OrderStatus.SHIPPED, delivered_at=None, cancelled_at=None)

    assert apply_status(order, OrderStatus.DELIVERED, NOW) is True
    assert order.delivered_at == NOW
    assert order.cancelled_at is None

    assert apply_status(order, OrderStatus.DELIVERED, NOW) is False


def test_apply_status_cancel_sets_cancelled_at() -> None:
    order = SimpleNamespace(status=OrderStatus.PENDING, delivered_at=None, cancelled_at=None)

    apply_status(order, OrderStatus.CANCELLED, NOW)

    assert order.status is OrderStatus.CANCELLED
    assert order.cancelled_at == NOW
