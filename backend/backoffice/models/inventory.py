from __future__ import annotations

from ..extensions import db
from backoffice.time_utils import to_utc_z


class Item(db.Model):
    """
    Sellable item and its on-hand stock.

    `stock` is the authoritative quantity. Only services/stock_service.py
    writes it, always as a single UPDATE applying a delta in SQL.
    """
    __tablename__ = "items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(64), nullable=True)

    # Authoritative storage in cents (frontend may only format for display)
    price_cents = db.Column(db.Integer, nullable=False, default=0)

    stock = db.Column(db.Integer, nullable=False, default=0)
    barcode = db.Column(db.String(64), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Item id={self.id} name={self.name!r} stock={self.stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "price_cents": self.price_cents,
            "stock": self.stock,
            "barcode": self.barcode,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class Tab(db.Model):
    """
    Running customer tab.

    amount_cents is the balance available on the tab: checkout paid from the
    tab draws it down, voids give it back.
    """
    __tablename__ = "tabs"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False, default=0)
    active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "amount_cents": self.amount_cents,
            "active": self.active,
            "created_at": to_utc_z(self.created_at),
        }
