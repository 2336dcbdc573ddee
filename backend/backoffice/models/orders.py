from __future__ import annotations

from ..extensions import db
from backoffice.time_utils import to_utc_z


ORDER_STATUSES = ("open", "paid", "void")


class Order(db.Model):
    """
    Service order (jobs flow), a separate family from Sale.

    Voiding an order is status-only: it never touches stock or tabs.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    status = db.Column(db.String(16), nullable=False, default="paid", index=True)

    staff_id = db.Column(db.Integer, db.ForeignKey("staff.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True)
    discount_id = db.Column(db.Integer, db.ForeignKey("discounts.id"), nullable=True)

    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False, default=0)
    note = db.Column(db.Text, nullable=True)

    # Void audit trail
    voided_at = db.Column(db.DateTime(timezone=True), nullable=True)
    voided_by_staff_id = db.Column(db.Integer, db.ForeignKey("staff.id"), nullable=True)
    void_reason = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    discount = db.relationship("Discount")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "status": self.status,
            "staff_id": self.staff_id,
            "customer_id": self.customer_id,
            "discount_id": self.discount_id,
            "subtotal_cents": self.subtotal_cents,
            "discount_amount_cents": self.discount_amount_cents,
            "total_cents": self.total_cents,
            "note": self.note,
            "voided_at": to_utc_z(self.voided_at) if self.voided_at else None,
            "voided_by_staff_id": self.voided_by_staff_id,
            "void_reason": self.void_reason,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class OrderLine(db.Model):
    """Individual line on an order."""
    __tablename__ = "order_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    unit_price_cents = db.Column(db.Integer, nullable=False, default=0)

    is_voided = db.Column(db.Boolean, nullable=False, default=False)
    voided_at = db.Column(db.DateTime(timezone=True), nullable=True)
    voided_by_staff_id = db.Column(db.Integer, db.ForeignKey("staff.id"), nullable=True)
    void_reason = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    order = db.relationship("Order", backref=db.backref("lines", lazy=True, order_by="OrderLine.id"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "name": self.name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "is_voided": self.is_voided,
            "voided_at": to_utc_z(self.voided_at) if self.voided_at else None,
            "voided_by_staff_id": self.voided_by_staff_id,
            "void_reason": self.void_reason,
            "created_at": to_utc_z(self.created_at),
        }
