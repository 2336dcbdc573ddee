from __future__ import annotations

from ..extensions import db
from backoffice.time_utils import to_utc_z


class Sale(db.Model):
    """
    Completed point-of-sale transaction.

    Created once by sales_service.record_sale and afterwards mutated only by
    the void paths. Never deleted.

    TAB LINK: payment_method stays a free-form string for display and legacy
    rows ("cash", "card", "tab14"); tab_id is the typed reference the void
    paths refund to. It is resolved once, when the sale is recorded.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_voided_created", "voided", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    staff_id = db.Column(db.Integer, db.ForeignKey("staff.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    discount_id = db.Column(db.Integer, db.ForeignKey("discounts.id"), nullable=True)
    tab_id = db.Column(db.Integer, db.ForeignKey("tabs.id"), nullable=True, index=True)

    payment_method = db.Column(db.String(64), nullable=True)

    # Totals in cents; final_total_cents never goes below zero
    original_total_cents = db.Column(db.Integer, nullable=False, default=0)
    final_total_cents = db.Column(db.Integer, nullable=False, default=0)

    voided = db.Column(db.Boolean, nullable=False, default=False)
    voided_at = db.Column(db.DateTime(timezone=True), nullable=True)
    voided_by_staff_id = db.Column(db.Integer, db.ForeignKey("staff.id"), nullable=True)
    void_reason = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    staff = db.relationship("Staff", foreign_keys=[staff_id])
    customer = db.relationship("Customer")
    tab = db.relationship("Tab")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "staff_id": self.staff_id,
            "staff_name": self.staff.name if self.staff else None,
            "customer_id": self.customer_id,
            "customer_name": self.customer.name if self.customer else None,
            "discount_id": self.discount_id,
            "tab_id": self.tab_id,
            "payment_method": self.payment_method,
            "original_total_cents": self.original_total_cents,
            "final_total_cents": self.final_total_cents,
            "voided": self.voided,
            "voided_at": to_utc_z(self.voided_at) if self.voided_at else None,
            "voided_by_staff_id": self.voided_by_staff_id,
            "void_reason": self.void_reason,
            "created_at": to_utc_z(self.created_at),
        }


class SaleItem(db.Model):
    """
    One line of a sale.

    RESTOCK TRACKING:
    - sold_quantity: units taken out of stock when the sale was recorded
    - restocked_quantity: units already put back by a void
    - quantity: units still counted as sold (sold - restocked until the
      whole sale is voided)

    A full-sale void restocks only sold_quantity - restocked_quantity, so a
    unit returned by an item-level void is never returned twice.
    """
    __tablename__ = "sale_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)
    item_name = db.Column(db.String(255), nullable=True)

    quantity = db.Column(db.Integer, nullable=False)
    sold_quantity = db.Column(db.Integer, nullable=False)
    restocked_quantity = db.Column(db.Integer, nullable=False, default=0)

    price_each_cents = db.Column(db.Integer, nullable=False)
    subtotal_cents = db.Column(db.Integer, nullable=False)

    voided = db.Column(db.Boolean, nullable=False, default=False)
    voided_at = db.Column(db.DateTime(timezone=True), nullable=True)
    voided_by_staff_id = db.Column(db.Integer, db.ForeignKey("staff.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    sale = db.relationship("Sale", backref=db.backref("items", lazy=True, order_by="SaleItem.id"))
    item = db.relationship("Item")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "item_id": self.item_id,
            "item_name": self.item_name,
            "quantity": self.quantity,
            "sold_quantity": self.sold_quantity,
            "restocked_quantity": self.restocked_quantity,
            "price_each_cents": self.price_each_cents,
            "subtotal_cents": self.subtotal_cents,
            "voided": self.voided,
            "voided_at": to_utc_z(self.voided_at) if self.voided_at else None,
            "voided_by_staff_id": self.voided_by_staff_id,
        }
