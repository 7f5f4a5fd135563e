"""Role and ownership rules for order operations.

Every read or write of an order passes through `authorize` first. The function has no side
effects: it returns when the action is allowed and raises when it is not.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from services.api.app.models.enums import OrderStatus, UserRole
from services.api.app.services.errors import BadRequestError, ForbiddenError

PRIVILEGED_ROLES = frozenset({UserRole.ADMIN, UserRole.SHOP_OWNER})

# Statuses in which a non-privileged requester may no longer edit an order.
_EDIT_LOCKED: dict[UserRole, frozenset[OrderStatus]] = {
    UserRole.CUSTOMER: frozenset(
        {
            OrderStatus.SHIPPED,
            OrderStatus.DELIVERED,
            OrderStatus.CANCELLED,
            OrderStatus.RETURNED,
        }
    ),
    UserRole.STAFF: frozenset(
        {OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.RETURNED}
    ),
}


class OrderAction(str, Enum):
    VIEW = "VIEW"
    UPDATE = "UPDATE"
    CANCEL = "CANCEL"
    SET_STATUS = "SET_STATUS"


@dataclass(frozen=True, slots=True)
class Requester:
    id: int
    role: UserRole
    branch_id: int | None = None

    @property
    def is_privileged(self) -> bool:
        return self.role in PRIVILEGED_ROLES


class OrderView(Protocol):
    user_id: int | None
    branch_id: int | None
    status: OrderStatus


def authorize(requester: Requester, order: OrderView, action: OrderAction) -> None:
    ensure_valid_requester(requester)

    if action is OrderAction.VIEW:
        _authorize_view(requester, order)
    elif action is OrderAction.UPDATE:
        _authorize_update(requester, order)
    elif action is OrderAction.SET_STATUS:
        _authorize_set_status(requester, order)
    elif action is OrderAction.CANCEL:
        _authorize_cancel(requester, order)
    else:
        raise BadRequestError(f"Unknown order action: {action!r}")


def ensure_valid_requester(requester: Requester | None) -> None:
    if requester is None or not requester.id or requester.id <= 0:
        raise BadRequestError("Invalid requester id")


def can_view(requester: Requester, order: OrderView) -> bool:
    if requester.is_privileged:
        return True

    if _same_branch(requester, order):
        return True

    return order.user_id is not None and order.user_id == requester.id


def _authorize_view(requester: Requester, order: OrderView) -> None:
    if not can_view(requester, order):
        raise ForbiddenError("You do not have access to this order.")


def _authorize_update(requester: Requester, order: OrderView) -> None:
    _authorize_view(requester, order)

    if requester.is_privileged:
        return

    if order.status in _EDIT_LOCKED.get(requester.role, frozenset()):
        raise BadRequestError(f"Cannot update order in status {order.status.value}")


def _authorize_set_status(requester: Requester, order: OrderView) -> None:
    if requester.role is UserRole.CUSTOMER:
        raise ForbiddenError("Customers cannot change order status")

    if requester.is_privileged:
        return

    if not _same_branch(requester, order):
        raise ForbiddenError("Staff can only change orders of their own branch")


def _authorize_cancel(requester: Requester, order: OrderView) -> None:
    if requester.is_privileged:
        return

    if requester.role is UserRole.CUSTOMER:
        if order.user_id != requester.id:
            raise ForbiddenError("Customers can only manage their own orders.")
        return

    if not _same_branch(requester, order):
        raise ForbiddenError("Staff can only cancel orders of their own branch")


def _same_branch(requester: Requester, order: OrderView) -> bool:
    return (
        requester.role is UserRole.STAFF
        and requester.branch_id is not None
        and requester.branch_id == order.branch_id
    )
