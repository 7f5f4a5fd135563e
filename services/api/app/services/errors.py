from __future__ import annotations


class OrderError(Exception):
    """Base class for order domain errors."""


class BadRequestError(OrderError):
    """Malformed input or a reference that does not exist."""


class NotFoundError(OrderError):
    """No order matches the given id or order number."""


class ForbiddenError(OrderError):
    """The requester's role or ownership does not allow the action."""
