"""Order orchestration: create, read, update and cancel orders.

`OrderService` glues the authorization policy, the status lifecycle and gift
reconciliation to persistence and to the pricing, notification and payment
collaborators. Every write runs inside one unit of work; notifications run after commit
and can never fail the caller's operation.
"""

from __future__ import annotations

import math
import random
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import structlog
from packages.shared.schemas.notifications import (
    OrderCreatedAdminPayloadV1,
    OrderStatusChangedPayloadV1,
)
from packages.shared.schemas.pricing import PricingContextV1, PricingItemInputV1
from services.api.app.db.database import transaction
from services.api.app.db.models import (
    Address,
    Branch,
    Cart,
    Order,
    OrderItem,
    ProductVariant,
    User,
)
from services.api.app.models.enums import (
    FulfillmentMethod,
    OrderStatus,
    PaymentMethod,
    UserRole,
    VariantStatus,
)
from services.api.app.models.order import (
    OrderCreateRequest,
    OrderItemInput,
    OrderUpdateRequest,
)
from services.api.app.services.errors import BadRequestError, ForbiddenError, NotFoundError
from services.api.app.services.gift_reconciliation import (
    GiftReconciler,
    OrderLine,
    ReconciledOrder,
)
from services.api.app.services.notifications_base import Notifier
from services.api.app.services.order_lifecycle import (
    TERMINAL_STATUSES,
    apply_status,
    can_cancel,
    ensure_transition,
)
from services.api.app.services.order_policy import (
    OrderAction,
    Requester,
    authorize,
    ensure_valid_requester,
)
from services.api.app.services.payment_base import PaymentGateway
from services.api.app.services.pricing_base import PricingEngine
from sqlalchemy import or_
from sqlalchemy.orm import Session

logger = structlog.get_logger(__name__)

ALREADY_CANCELLED_MESSAGE = "Order is already cancelled"
CANCELLED_MESSAGE = "Order cancellation requested successfully"

MAX_PAGE_SIZE = 100

# Fields still writable once an order reached a terminal status (privileged roles only).
_TERMINAL_WRITABLE = frozenset({"note", "expected_delivery_date", "status"})
_CLEARABLE = frozenset({"note", "expected_delivery_date", "address_id"})
_SIMPLE_FIELDS = (
    "branch_id",
    "address_id",
    "payment_method",
    "fulfillment_method",
    "note",
    "expected_delivery_date",
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class CreateOrderResult:
    order: Order
    pay_url: str | None = None


@dataclass(frozen=True, slots=True)
class CancellationResult:
    order_number: str
    status: OrderStatus
    message: str


@dataclass(frozen=True, slots=True)
class OrderStatusView:
    id: int
    order_number: str
    status: OrderStatus
    total_amount: Decimal
    is_paid: bool
    paid_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class OrderFilters:
    statuses: list[OrderStatus] = field(default_factory=list)
    payment_methods: list[PaymentMethod] = field(default_factory=list)
    fulfillment_methods: list[FulfillmentMethod] = field(default_factory=list)
    branch_id: int | None = None
    user_id: int | None = None
    min_total: Decimal | None = None
    max_total: Decimal | None = None
    created_from: datetime | None = None
    created_to: datetime | None = None
    search: str | None = None
    page: int = 1
    limit: int = 20


@dataclass(frozen=True, slots=True)
class OrderPage:
    items: list[Order]
    total: int
    page: int
    limit: int
    total_pages: int


class OrderService:
    def __init__(
        self,
        db: Session,
        *,
        pricing: PricingEngine,
        notifier: Notifier,
        payments: PaymentGateway,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._db = db
        self._pricing = pricing
        self._notifier = notifier
        self._payments = payments
        self._clock = clock

    def create(
        self, dto: OrderCreateRequest, requester: Requester | None = None
    ) -> CreateOrderResult:
        if requester is not None:
            ensure_valid_requester(requester)
            if requester.role is not UserRole.CUSTOMER:
                raise ForbiddenError("Only customers can create orders")

        user_id = requester.id if requester is not None else None
        now = self._clock()

        with transaction(self._db):
            self._validate_references(
                user_id=user_id, branch_id=dto.branch_id, address_id=dto.address_id
            )
            self._validate_variants(dto.items)

            reconciled = self._price_and_reconcile(
                dto.items,
                PricingContextV1(
                    promotion_code=dto.promotion_code,
                    branch_id=dto.branch_id,
                    address_id=dto.address_id,
                    user_id=user_id,
                ),
            )

            order = Order(
                order_number=self._generate_order_number(now),
                user_id=user_id,
                branch_id=dto.branch_id,
                address_id=dto.address_id,
                status=OrderStatus.PENDING,
                payment_method=dto.payment_method,
                fulfillment_method=dto.fulfillment_method,
                note=dto.note,
                expected_delivery_date=dto.expected_delivery_date,
            )
            self._apply_reconciled(order, reconciled)
            self._db.add(order)

            if user_id is not None:
                self._remove_purchased_cart_items(user_id, dto.items)

        logger.info(
            "Order created",
            order_id=order.id,
            order_number=order.order_number,
            user_id=user_id,
            total_amount=str(order.total_amount),
            gift_lines=len(reconciled.gifts),
        )

        self._notify_admins_order_created(order)

        pay_url: str | None = None
        if order.payment_method is PaymentMethod.MOMO:
            payment = self._payments.create_payment(
                order.id, order.order_number, order.total_amount
            )
            pay_url = payment.pay_url

        return CreateOrderResult(order=order, pay_url=pay_url)

    def find_one(self, order_id: int | None, requester: Requester) -> Order:
        order = self._load(order_id)
        authorize(requester, order, OrderAction.VIEW)
        return order

    def get_status(self, order_number: str, requester: Requester) -> OrderStatusView:
        order = self._load_by_number(order_number)
        authorize(requester, order, OrderAction.VIEW)
        return OrderStatusView(
            id=order.id,
            order_number=order.order_number,
            status=order.status,
            total_amount=order.total_amount,
            is_paid=order.paid_at is not None,
            paid_at=order.paid_at,
        )

    def list_recent(self, requester: Requester, limit: int = 5) -> list[Order]:
        ensure_valid_requester(requester)
        return (
            self._db.query(Order)
            .filter(Order.user_id == requester.id)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .limit(limit)
            .all()
        )

    def list_orders(self, filters: OrderFilters, requester: Requester) -> OrderPage:
        ensure_valid_requester(requester)

        branch_id = filters.branch_id
        if requester.role is UserRole.CUSTOMER:
            raise ForbiddenError("Customers cannot list all orders")
        if requester.role is UserRole.STAFF:
            if requester.branch_id is None:
                raise ForbiddenError("Staff without a branch cannot list orders")
            branch_id = requester.branch_id

        q = self._db.query(Order)
        if filters.statuses:
            q = q.filter(Order.status.in_(filters.statuses))
        if filters.payment_methods:
            q = q.filter(Order.payment_method.in_(filters.payment_methods))
        if filters.fulfillment_methods:
            q = q.filter(Order.fulfillment_method.in_(filters.fulfillment_methods))
        if branch_id is not None:
            q = q.filter(Order.branch_id == branch_id)
        if filters.user_id is not None:
            q = q.filter(Order.user_id == filters.user_id)
        if filters.min_total is not None:
            q = q.filter(Order.total_amount >= filters.min_total)
        if filters.max_total is not None:
            q = q.filter(Order.total_amount <= filters.max_total)
        if filters.created_from is not None:
            q = q.filter(Order.created_at >= filters.created_from)
        if filters.created_to is not None:
            q = q.filter(Order.created_at <= filters.created_to)

        search = (filters.search or "").strip()
        if search:
            pattern = "%" + re.sub(r"\s+", "%", search) + "%"
            q = q.outerjoin(User, Order.user_id == User.id).filter(
                or_(
                    Order.order_number.ilike(pattern),
                    User.full_name.ilike(pattern),
                    User.email.ilike(pattern),
                    User.phone.ilike(pattern),
                )
            )

        limit = max(1, min(filters.limit, MAX_PAGE_SIZE))
        page = max(1, filters.page)
        total = q.order_by(None).count()

        items = (
            q.order_by(Order.created_at.desc(), Order.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return OrderPage(
            items=items,
            total=total,
            page=page,
            limit=limit,
            total_pages=max(math.ceil(total / limit), 1),
        )

    def update(self, order_id: int | None, dto: OrderUpdateRequest, requester: Requester) -> Order:
        order = self._load(order_id)
        authorize(requester, order, OrderAction.UPDATE)

        fields = dto.model_dump(exclude_unset=True)
        target_status = dto.status if "status" in fields else None

        if target_status is not None:
            authorize(requester, order, OrderAction.SET_STATUS)
            ensure_transition(order.status, target_status, requester.role)

        if order.status in TERMINAL_STATUSES:
            locked = sorted(set(fields) - _TERMINAL_WRITABLE)
            if locked:
                raise BadRequestError(
                    f"Only metadata can change on a {order.status.value} order; "
                    f"rejected fields: {', '.join(locked)}"
                )

        previous_status = order.status
        now = self._clock()

        with transaction(self._db):
            self._validate_references(
                user_id=None,
                branch_id=fields.get("branch_id"),
                address_id=fields.get("address_id"),
            )

            for name in _SIMPLE_FIELDS:
                if name not in fields:
                    continue
                value = fields[name]
                if value is None and name not in _CLEARABLE:
                    continue
                setattr(order, name, value)

            if dto.items:
                self._validate_variants(dto.items)
                reconciled = self._price_and_reconcile(
                    dto.items,
                    PricingContextV1(
                        promotion_code=dto.promotion_code,
                        branch_id=order.branch_id,
                        address_id=order.address_id,
                        user_id=order.user_id,
                    ),
                )
                order.items.clear()
                self._apply_reconciled(order, reconciled)

            status_changed = False
            if target_status is not None:
                status_changed = apply_status(order, target_status, now)

        logger.info(
            "Order updated",
            order_id=order.id,
            order_number=order.order_number,
            fields=sorted(fields),
            previous_status=previous_status.value,
            status=order.status.value,
        )

        if status_changed:
            self._notify_user_status_changed(order)

        return order

    def request_cancellation(
        self,
        order_number: str,
        requester: Requester,
        reason: str | None = None,
    ) -> CancellationResult:
        ensure_valid_requester(requester)
        order = self._load_by_number(order_number)
        authorize(requester, order, OrderAction.CANCEL)

        if order.status == OrderStatus.CANCELLED:
            return CancellationResult(
                order_number=order.order_number,
                status=OrderStatus.CANCELLED,
                message=ALREADY_CANCELLED_MESSAGE,
            )

        if not can_cancel(order.status, requester.role):
            if requester.role is UserRole.CUSTOMER:
                raise BadRequestError("Customers can only cancel pending orders")
            raise BadRequestError(f"Cannot cancel an order in status {order.status.value}")

        now = self._clock()
        with transaction(self._db):
            apply_status(order, OrderStatus.CANCELLED, now)
            order.cancellation_reason = reason

        logger.info(
            "Order cancelled",
            order_id=order.id,
            order_number=order.order_number,
            requester_id=requester.id,
            requester_role=requester.role.value,
        )

        self._notify_user_status_changed(order)

        return CancellationResult(
            order_number=order.order_number,
            status=order.status,
            message=CANCELLED_MESSAGE,
        )

    def record_payment(self, order_number: str, result_code: int) -> Order:
        order = self._load_by_number(order_number)

        if order.payment_method is not PaymentMethod.MOMO:
            logger.warning(
                "Payment callback for non-MoMo order ignored",
                order_number=order_number,
                payment_method=order.payment_method.value,
            )
            return order

        if result_code != 0:
            logger.warning(
                "Payment failed",
                order_number=order_number,
                result_code=result_code,
            )
            return order

        if order.status != OrderStatus.PENDING:
            logger.warning(
                "Payment received for non-pending order",
                order_number=order_number,
                status=order.status.value,
            )
            return order

        now = self._clock()
        with transaction(self._db):
            apply_status(order, OrderStatus.CONFIRMED, now)
            order.paid_at = now

        logger.info("Order payment confirmed", order_id=order.id, order_number=order_number)

        self._notify_user_status_changed(order)
        return order

    def _load(self, order_id: int | None) -> Order:
        if not order_id or order_id <= 0:
            raise BadRequestError("Invalid order ID")

        order = self._db.get(Order, order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")
        return order

    def _load_by_number(self, order_number: str) -> Order:
        if not (order_number or "").strip():
            raise BadRequestError("Invalid order number")

        order = self._db.query(Order).filter(Order.order_number == order_number).first()
        if order is None:
            raise NotFoundError(f"Order with number {order_number} not found")
        return order

    def _validate_references(
        self,
        *,
        user_id: int | None,
        branch_id: int | None,
        address_id: int | None,
    ) -> None:
        for model, label, ref_id in (
            (User, "User", user_id),
            (Branch, "Branch", branch_id),
            (Address, "Address", address_id),
        ):
            if ref_id is None:
                continue
            if ref_id <= 0 or self._db.get(model, ref_id) is None:
                raise BadRequestError(f"{label} {ref_id} not found")

    def _validate_variants(self, items: Iterable[OrderItemInput]) -> None:
        wanted = {item.variant_id for item in items}
        found = {
            row[0]
            for row in self._db.query(ProductVariant.id)
            .filter(ProductVariant.id.in_(sorted(wanted)))
            .all()
        }
        missing = sorted(wanted - found)
        if missing:
            raise BadRequestError(f"Variant {missing[0]} not found")

    def _price_and_reconcile(
        self, items: Iterable[OrderItemInput], context: PricingContextV1
    ) -> ReconciledOrder:
        pricing = self._pricing.calculate(
            [PricingItemInputV1(variant_id=i.variant_id, quantity=i.quantity) for i in items],
            context,
        )
        return GiftReconciler(self._find_active_variant).reconcile(pricing)

    def _find_active_variant(self, product_id: int) -> ProductVariant | None:
        return (
            self._db.query(ProductVariant)
            .filter(
                ProductVariant.product_id == product_id,
                ProductVariant.status == VariantStatus.ACTIVE,
            )
            .order_by(ProductVariant.id.asc())
            .first()
        )

    @staticmethod
    def _apply_reconciled(order: Order, reconciled: ReconciledOrder) -> None:
        totals = reconciled.totals
        order.sub_total = totals.sub_total
        order.discount_total = totals.discount_total
        order.shipping_fee = totals.shipping_fee
        order.tax_total = totals.tax_total
        order.total_amount = totals.total_amount
        order.items.extend(_to_order_item(line) for line in reconciled.lines)

    def _generate_order_number(self, now: datetime) -> str:
        stamp = now.strftime("%Y%m%d")
        for _ in range(10):
            candidate = f"ORD-{stamp}-{random.randint(0, 9999):04d}"
            taken = (
                self._db.query(Order.id).filter(Order.order_number == candidate).first()
                is not None
            )
            if not taken:
                return candidate
        return f"ORD-{stamp}-{uuid4().hex[:8].upper()}"

    def _remove_purchased_cart_items(
        self, user_id: int, items: Iterable[OrderItemInput]
    ) -> None:
        cart = self._db.query(Cart).filter(Cart.user_id == user_id).first()
        if cart is None or not cart.items:
            return

        remaining: dict[int, int] = {}
        for item in items:
            remaining[item.variant_id] = remaining.get(item.variant_id, 0) + item.quantity

        for cart_item in list(cart.items):
            left = remaining.get(cart_item.variant_id, 0)
            if left <= 0:
                continue

            if cart_item.quantity <= left:
                remaining[cart_item.variant_id] = left - cart_item.quantity
                cart.items.remove(cart_item)
            else:
                cart_item.quantity -= left
                remaining[cart_item.variant_id] = 0

    def _notify_admins_order_created(self, order: Order) -> None:
        try:
            result = self._notifier.notify_admins_order_created(
                OrderCreatedAdminPayloadV1(
                    order_id=order.id,
                    order_number=order.order_number,
                    total_amount=order.total_amount,
                    user_id=order.user_id,
                )
            )
            if not result.success:
                logger.warning(
                    "Admin notification reported failures",
                    order_id=order.id,
                    errors=result.errors,
                )
        except Exception as e:
            logger.error(
                "Failed to notify admins order created",
                order_id=order.id,
                error=str(e),
                exc_info=True,
            )

    def _notify_user_status_changed(self, order: Order) -> None:
        if order.user_id is None:
            return

        try:
            result = self._notifier.notify_user_order_status_changed(
                OrderStatusChangedPayloadV1(
                    order_id=order.id,
                    order_number=order.order_number,
                    status=order.status.value,
                    total_amount=order.total_amount,
                    user_id=order.user_id,
                )
            )
            if not result.success:
                logger.warning(
                    "Status notification reported failures",
                    order_id=order.id,
                    errors=result.errors,
                )
        except Exception as e:
            logger.error(
                "Failed to notify user order status updated",
                order_id=order.id,
                error=str(e),
                exc_info=True,
            )


def _to_order_item(line: OrderLine) -> OrderItem:
    return OrderItem(
        variant_id=line.variant_id,
        quantity=line.quantity,
        unit_price=line.unit_price,
        sub_total=line.sub_total,
        discount_total=line.discount_total,
        total_amount=line.total_amount,
        is_gift=line.is_gift,
    )
