"""Requester identity for order endpoints.

Authentication happens upstream; the gateway forwards the verified identity in the
`X-User-Id`, `X-User-Role` and `X-Branch-Id` headers.
"""

from __future__ import annotations

from fastapi import Depends, Header, HTTPException
from services.api.app.models.enums import UserRole
from services.api.app.services.order_policy import Requester


def _parse_int(value: str, header: str) -> int:
    try:
        return int(value.strip())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid {header} header") from e


def get_optional_requester(
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
    x_branch_id: str | None = Header(default=None),
) -> Requester | None:
    if x_user_id is None or not x_user_id.strip():
        return None

    user_id = _parse_int(x_user_id, "X-User-Id")

    role = UserRole.CUSTOMER
    if x_user_role is not None and x_user_role.strip():
        try:
            role = UserRole(x_user_role.strip().upper())
        except ValueError as e:
            raise HTTPException(status_code=400, detail="Invalid X-User-Role header") from e

    branch_id = None
    if x_branch_id is not None and x_branch_id.strip():
        branch_id = _parse_int(x_branch_id, "X-Branch-Id")

    return Requester(id=user_id, role=role, branch_id=branch_id)


def get_requester(requester: Requester | None = Depends(get_optional_requester)) -> Requester:
    if requester is None:
        raise HTTPException(status_code=401, detail="Missing requester identity")
    return requester
