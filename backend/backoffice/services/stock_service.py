# Overview: Stock ledger; authoritative per-item on-hand quantity.

"""
Stock Ledger

Every write is a single UPDATE that applies the delta in SQL
(stock = stock + :delta), so concurrent sales and voids touching the same
item cannot lose each other's updates. Nothing here commits: callers run
these inside services.concurrency.run_in_transaction.
"""

from __future__ import annotations

from ..extensions import db
from ..models import Item
from ..validation import ConflictError, NotFoundError


class InsufficientStockError(ConflictError):
    """Raised when a decrement would take stock below zero."""
    def __init__(self, item_id: int, requested: int, on_hand: int):
        super().__init__(
            "Insufficient stock",
            details={"item_id": item_id, "requested_quantity": requested, "on_hand": on_hand},
        )


def get_stock(item_id: int) -> int:
    stock = db.session.query(Item.stock).filter(Item.id == item_id).scalar()
    if stock is None:
        raise NotFoundError("Item not found", details={"item_id": item_id})
    return int(stock)


def decrement_stock(item_id: int, quantity: int, *, allow_negative: bool = False) -> None:
    """
    Take quantity units out of stock.

    Unless allow_negative is set, the guard stock >= quantity is part of the
    same UPDATE, so two racing sales cannot both take the last unit.
    """
    if quantity < 0:
        raise ValueError("quantity must be non-negative")
    if quantity == 0:
        return

    query = db.session.query(Item).filter(Item.id == item_id)
    if not allow_negative:
        query = query.filter(Item.stock >= quantity)

    updated = query.update({Item.stock: Item.stock - quantity}, synchronize_session=False)
    if updated:
        return

    # Nothing changed: either the item is missing or the guard refused it
    on_hand = get_stock(item_id)
    raise InsufficientStockError(item_id, quantity, on_hand)


def increment_stock(item_id: int, quantity: int) -> None:
    """Put quantity units back into stock (restock)."""
    if quantity < 0:
        raise ValueError("quantity must be non-negative")
    if quantity == 0:
        return

    updated = (
        db.session.query(Item)
        .filter(Item.id == item_id)
        .update({Item.stock: Item.stock + quantity}, synchronize_session=False)
    )
    if not updated:
        raise NotFoundError("Item not found", details={"item_id": item_id})
