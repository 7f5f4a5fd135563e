from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path

import pytest
from packages.shared.schemas.notifications import (
    NotificationDispatchResultV1,
    OrderCreatedAdminPayloadV1,
    OrderStatusChangedPayloadV1,
)
from packages.shared.schemas.pricing import (
    PricingContextV1,
    PricingItemInputV1,
    PricingSummaryV1,
)
from services.api.app.db.models import (
    Address,
    Branch,
    Cart,
    CartItem,
    Product,
    ProductVariant,
    User,
)
from services.api.app.models.enums import UserRole, VariantStatus
from sqlalchemy.orm import Session


@dataclass(frozen=True)
class Catalog:
    main_branch_id: int
    north_branch_id: int
    admin_id: int
    owner_id: int
    staff_id: int
    north_staff_id: int
    customer_id: int
    other_customer_id: int
    address_id: int


class StubPricingEngine:
    name = "STUB"

    def __init__(self, summary: PricingSummaryV1) -> None:
        self._summary = summary
        self.calls: list[tuple[list[PricingItemInputV1], PricingContextV1]] = []

    def calculate(
        self, items: list[PricingItemInputV1], context: PricingContextV1
    ) -> PricingSummaryV1:
        self.calls.append((items, context))
        return self._summary


class RecordingNotifier:
    name = "RECORDING"

    def __init__(self) -> None:
        self.created: list[OrderCreatedAdminPayloadV1] = []
        self.status_changed: list[OrderStatusChangedPayloadV1] = []

    def notify_admins_order_created(
        self, payload: OrderCreatedAdminPayloadV1
    ) -> NotificationDispatchResultV1:
        self.created.append(payload)
        return NotificationDispatchResultV1(success=True, targeted_receivers=1, success_count=1)

    def notify_user_order_status_changed(
        self, payload: OrderStatusChangedPayloadV1
    ) -> NotificationDispatchResultV1:
        self.status_changed.append(payload)
        return NotificationDispatchResultV1(success=True, targeted_receivers=1, success_count=1)


class RaisingNotifier:
    name = "RAISING"

    def notify_admins_order_created(self, payload: object) -> NotificationDispatchResultV1:
        del payload
        raise RuntimeError("push service down")

    def notify_user_order_status_changed(self, payload: object) -> NotificationDispatchResultV1:
        del payload
        raise RuntimeError("push service down")


@pytest.fixture()
def db_url(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> str:
    url = f"sqlite+pysqlite:///{tmp_path / 'orders_test.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    monkeypatch.setenv("ORDERS_DB_AUTO_CREATE", "true")
    monkeypatch.setenv("ORDERS_PRICING_ENGINE", "catalog")
    monkeypatch.setenv("ORDERS_NOTIFIER", "inbox")
    monkeypatch.setenv("ORDERS_PAYMENT_GATEWAY", "mock")

    from services.api.app.db.init_db import init_db

    init_db()
    return url


@pytest.fixture()
def db(db_url: str) -> Iterator[Session]:
    from services.api.app.db.database import db_session

    session = db_session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def catalog(db: Session) -> Catalog:
    main = Branch(name="Main")
    north = Branch(name="North")
    db.add_all([main, north])
    db.flush()

    def _user(
        email: str, role: UserRole, branch_id: int | None = None, phone: str | None = None
    ) -> User:
        user = User(
            email=email,
            full_name=email.split("@")[0],
            phone=phone,
            role=role,
            branch_id=branch_id,
        )
        db.add(user)
        db.flush()
        return user

    admin = _user("admin@example.com", UserRole.ADMIN)
    owner = _user("owner@example.com", UserRole.SHOP_OWNER)
    staff = _user("staff@example.com", UserRole.STAFF, main.id)
    north_staff = _user("north@example.com", UserRole.STAFF, north.id)
    customer = _user("customer@example.com", UserRole.CUSTOMER, phone="0901234567")
    other = _user("other@example.com", UserRole.CUSTOMER, phone="0907654321")

    address = Address(
        user_id=customer.id, recipient_name="Customer", line1="1 Tea Street", city="Hanoi"
    )
    db.add(address)

    db.add_all(
        [
            Product(id=1, name="Green Tea"),
            Product(id=3, name="Oolong Tea"),
            Product(id=202, name="Tea Cup"),
        ]
    )
    db.flush()
    db.add_all(
        [
            ProductVariant(id=1, product_id=1, name="Green Tea 250g", price=Decimal("100.00")),
            ProductVariant(id=7, product_id=3, name="Oolong Tea 250g", price=Decimal("150.00")),
            ProductVariant(
                id=50,
                product_id=202,
                name="Tea Cup Old",
                price=Decimal("90.00"),
                status=VariantStatus.INACTIVE,
            ),
            ProductVariant(id=99, product_id=202, name="Tea Cup White", price=Decimal("100.00")),
            ProductVariant(id=120, product_id=202, name="Tea Cup Blue", price=Decimal("100.00")),
        ]
    )
    db.flush()

    cart = Cart(user_id=customer.id)
    cart.items.extend([CartItem(variant_id=1, quantity=3), CartItem(variant_id=7, quantity=1)])
    db.add(cart)
    db.commit()

    return Catalog(
        main_branch_id=main.id,
        north_branch_id=north.id,
        admin_id=admin.id,
        owner_id=owner.id,
        staff_id=staff.id,
        north_staff_id=north_staff.id,
        customer_id=customer.id,
        other_customer_id=other.id,
        address_id=address.id,
    )


@pytest.fixture()
def recording_notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def raising_notifier() -> RaisingNotifier:
    return RaisingNotifier()


@pytest.fixture()
def stub_pricing() -> type[StubPricingEngine]:
    return StubPricingEngine
