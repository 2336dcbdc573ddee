from __future__ import annotations

from ..extensions import db


class Customer(db.Model):
    """Customer a sale or order can be attributed to."""
    __tablename__ = "customers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=True)
    active = db.Column(db.Boolean, nullable=False, default=True)
    discount_id = db.Column(db.Integer, db.ForeignKey("discounts.id"), nullable=True)

    discount = db.relationship("Discount")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "active": self.active,
            "discount_id": self.discount_id,
        }


class Discount(db.Model):
    """Percentage discount (10 means 10%)."""
    __tablename__ = "discounts"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    percent = db.Column(db.Integer, nullable=False, default=0)

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "percent": self.percent}
