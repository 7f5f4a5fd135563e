from __future__ import annotations

from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    RETURNED = "RETURNED"


class PaymentMethod(str, Enum):
    COD = "cod"
    MOMO = "momo"
    BANK = "bank"
    STORE = "store"


class FulfillmentMethod(str, Enum):
    DELIVERY = "delivery"
    PICKUP = "pickup"


class UserRole(str, Enum):
    CUSTOMER = "CUSTOMER"
    STAFF = "STAFF"
    SHOP_OWNER = "SHOP_OWNER"
    ADMIN = "ADMIN"


class VariantStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
