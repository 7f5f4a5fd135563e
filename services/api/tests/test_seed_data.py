from __future__ import annotations

from scripts.seed_data import seed_demo_catalog
from services.api.app.db.models import ProductVariant, User
from services.api.app.models.enums import UserRole


def test_seed_demo_catalog_is_rerunnable(db) -> None:
    first = seed_demo_catalog(db)
    second = seed_demo_catalog(db)

    assert first == second
    assert db.query(ProductVariant).count() == 4

    staff = db.get(User, first["staff_id"])
    assert staff.role is UserRole.STAFF
    assert staff.branch_id == first["branch_id"]
