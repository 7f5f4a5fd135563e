from __future__ import annotations

from types import SimpleNamespace

import pytest
from services.api.app.models.enums import OrderStatus, UserRole
from services.api.app.services.errors import BadRequestError, ForbiddenError
from services.api.app.services.order_policy import OrderAction, Requester, authorize, can_view


def _order(
    user_id: int | None = 10,
    branch_id: int | None = 1,
    status: OrderStatus = OrderStatus.PENDING,
) -> SimpleNamespace:
    return SimpleNamespace(user_id=user_id, branch_id=branch_id, status=status)


CUSTOMER = Requester(id=10, role=UserRole.CUSTOMER)
OTHER_CUSTOMER = Requester(id=11, role=UserRole.CUSTOMER)
STAFF = Requester(id=20, role=UserRole.STAFF, branch_id=1)
OTHER_STAFF = Requester(id=21, role=UserRole.STAFF, branch_id=2)
ADMIN = Requester(id=30, role=UserRole.ADMIN)
OWNER = Requester(id=31, role=UserRole.SHOP_OWNER)


@pytest.mark.parametrize(
    ("requester", "allowed"),
    [
        (CUSTOMER, True),
        (OTHER_CUSTOMER, False),
        (STAFF, True),
        (OTHER_STAFF, False),
        (ADMIN, True),
        (OWNER, True),
    ],
)
def test_view_matrix(requester: Requester, allowed: bool) -> None:
    order = _order()
    assert can_view(requester, order) is allowed

    if allowed:
        authorize(requester, order, OrderAction.VIEW)
    else:
        with pytest.raises(ForbiddenError):
            authorize(requester, order, OrderAction.VIEW)


def test_staff_without_branch_cannot_view_branch_orders() -> None:
    staff = Requester(id=20, role=UserRole.STAFF, branch_id=None)
    with pytest.raises(ForbiddenError):
        authorize(staff, _order(branch_id=None), OrderAction.VIEW)


@pytest.mark.parametrize("bad_id", [0, -1])
def test_invalid_requester_id_is_bad_request(bad_id: int) -> None:
    with pytest.raises(BadRequestError):
        authorize(Requester(id=bad_id, role=UserRole.ADMIN), _order(), OrderAction.VIEW)


@pytest.mark.parametrize(
    "status",
    [OrderStatus.SHIPPED, OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.RETURNED],
)
def test_customer_cannot_update_late_orders(status: OrderStatus) -> None:
    with pytest.raises(BadRequestError, match="Cannot update order"):
        authorize(CUSTOMER, _order(status=status), OrderAction.UPDATE)


def test_staff_can_update_shipped_but_not_delivered() -> None:
    authorize(STAFF, _order(status=OrderStatus.SHIPPED), OrderAction.UPDATE)

    with pytest.raises(BadRequestError):
        authorize(STAFF, _order(status=OrderStatus.DELIVERED), OrderAction.UPDATE)


def test_privileged_can_update_terminal_orders() -> None:
    authorize(ADMIN, _order(status=OrderStatus.DELIVERED), OrderAction.UPDATE)
    authorize(OWNER, _order(status=OrderStatus.CANCELLED), OrderAction.UPDATE)


def test_customer_can_never_set_status() -> None:
    with pytest.raises(ForbiddenError):
        authorize(CUSTOMER, _order(), OrderAction.SET_STATUS)


def test_staff_sets_status_only_in_own_branch() -> None:
    authorize(STAFF, _order(), OrderAction.SET_STATUS)

    with pytest.raises(ForbiddenError):
        authorize(OTHER_STAFF, _order(), OrderAction.SET_STATUS)


@pytest.mark.parametrize(
    ("requester", "allowed"),
    [
        (CUSTOMER, True),
        (OTHER_CUSTOMER, False),
        (STAFF, True),
        (OTHER_STAFF, False),
        (ADMIN, True),
        (OWNER, True),
    ],
)
def test_cancel_matrix(requester: Requester, allowed: bool) -> None:
    if allowed:
        authorize(requester, _order(), OrderAction.CANCEL)
    else:
        with pytest.raises(ForbiddenError):
            authorize(requester, _order(), OrderAction.CANCEL)


def test_customer_cannot_cancel_anonymous_order() -> None:
    with pytest.raises(ForbiddenError, match="own orders"):
        authorize(CUSTOMER, _order(user_id=None), OrderAction.CANCEL)
