"""Order status graph.

PENDING -> CONFIRMED -> PROCESSING -> SHIPPED -> DELIVERED, forward skips allowed.
CANCELLED and RETURNED are sinks; DELIVERED only leads to RETURNED.
"""

from __future__ import annotations

from datetime import datetime

from services.api.app.db.models import Order
from services.api.app.models.enums import OrderStatus, UserRole
from services.api.app.services.errors import BadRequestError

FORWARD_CHAIN: tuple[OrderStatus, ...] = (
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
)

TERMINAL_STATUSES = frozenset(
    {OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.RETURNED}
)

_CANCELLABLE: dict[UserRole, frozenset[OrderStatus]] = {
    UserRole.CUSTOMER: frozenset({OrderStatus.PENDING}),
    UserRole.STAFF: frozenset(
        {OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.PROCESSING}
    ),
    UserRole.SHOP_OWNER: frozenset(
        {
            OrderStatus.PENDING,
            OrderStatus.CONFIRMED,
            OrderStatus.PROCESSING,
            OrderStatus.SHIPPED,
        }
    ),
}
_CANCELLABLE[UserRole.ADMIN] = _CANCELLABLE[UserRole.SHOP_OWNER]


def next_statuses(current: OrderStatus) -> frozenset[OrderStatus]:
    """Statuses reachable from `current` in one write, ignoring who writes."""

    if current == OrderStatus.DELIVERED:
        return frozenset({OrderStatus.RETURNED})

    if current in TERMINAL_STATUSES:
        return frozenset()

    idx = FORWARD_CHAIN.index(current)
    return frozenset(FORWARD_CHAIN[idx + 1 :]) | {OrderStatus.CANCELLED}


def cancellable_statuses(role: UserRole) -> frozenset[OrderStatus]:
    return _CANCELLABLE.get(role, frozenset())


def can_cancel(status: OrderStatus, role: UserRole) -> bool:
    return status in cancellable_statuses(role)


def ensure_transition(current: OrderStatus, target: OrderStatus, role: UserRole) -> None:
    if target == current:
        return

    if target not in next_statuses(current):
        raise BadRequestError(
            f"Cannot change order status from {current.value} to {target.value}"
        )

    if target is OrderStatus.CANCELLED and not can_cancel(current, role):
        raise BadRequestError(f"Cannot cancel an order in status {current.value}")


def apply_status(order: Order, target: OrderStatus, now: datetime) -> bool:
    """Set `target` on the order and stamp the matching timestamp.

    Returns True when the status actually changed.
    """

    if order.status == target:
        return False

    order.status = target
    if target is OrderStatus.DELIVERED:
        order.delivered_at = now
    elif target is OrderStatus.CANCELLED:
        order.cancelled_at = now
    return True
