from __future__ import annotations

import argparse
from decimal import Decimal

from services.api.app.db.database import db_session
from services.api.app.db.init_db import init_db
from services.api.app.db.models import (
    Address,
    Branch,
    Product,
    ProductVariant,
    User,
)
from services.api.app.models.enums import UserRole, VariantStatus
from sqlalchemy.orm import Session

DEMO_PRODUCTS = (
    ("Green Tea", (("Green Tea 250g", Decimal("100.00")), ("Green Tea 500g", Decimal("180.00")))),
    ("Oolong Tea", (("Oolong Tea 250g", Decimal("150.00")),)),
    ("Tea Cup", (("Tea Cup White", Decimal("50.00")),)),
)


def seed_demo_catalog(db: Session, branch_name: str = "Main Branch") -> dict[str, int]:
    """Insert a small demo catalog. Existing rows are reused, so reruns are harmless."""

    branch = db.query(Branch).filter(Branch.name == branch_name).first()
    if branch is None:
        branch = Branch(name=branch_name)
        db.add(branch)
        db.flush()

    users: dict[str, User] = {}
    for key, email, name, role, branch_id, phone in (
        ("admin", "admin@example.com", "Admin", UserRole.ADMIN, None, None),
        ("staff", "staff@example.com", "Staff", UserRole.STAFF, branch.id, None),
        ("customer", "customer@example.com", "Customer", UserRole.CUSTOMER, None, "0900000000"),
    ):
        user = db.query(User).filter(User.email == email).first()
        if user is None:
            user = User(
                email=email, full_name=name, phone=phone, role=role, branch_id=branch_id
            )
            db.add(user)
            db.flush()
        users[key] = user

    address = db.query(Address).filter(Address.user_id == users["customer"].id).first()
    if address is None:
        address = Address(
            user_id=users["customer"].id,
            recipient_name="Customer",
            line1="1 Demo Street",
            city="Hanoi",
            phone="0900000000",
        )
        db.add(address)
        db.flush()

    for product_name, variants in DEMO_PRODUCTS:
        product = db.query(Product).filter(Product.name == product_name).first()
        if product is None:
            product = Product(name=product_name)
            db.add(product)
            db.flush()

        for variant_name, price in variants:
            exists = (
                db.query(ProductVariant)
                .filter(ProductVariant.product_id == product.id, ProductVariant.name == variant_name)
                .first()
            )
            if exists is None:
                db.add(
                    ProductVariant(
                        product_id=product.id,
                        name=variant_name,
                        price=price,
                        status=VariantStatus.ACTIVE,
                    )
                )

    db.commit()
    return {
        "branch_id": branch.id,
        "admin_id": users["admin"].id,
        "staff_id": users["staff"].id,
        "customer_id": users["customer"].id,
        "address_id": address.id,
    }


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed a demo catalog for the orders API")
    parser.add_argument("--branch-name", default="Main Branch")
    args = parser.parse_args()

    init_db()

    db = db_session()
    try:
        ids = seed_demo_catalog(db, branch_name=args.branch_name)
        print("Seeded " + " ".join(f"{k}={v}" for k, v in ids.items()))
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    raise SystemExit(main())
