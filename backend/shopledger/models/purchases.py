from __future__ import annotations

from ..extensions import db
from shopledger.money import format_money
from shopledger.time_utils import to_utc_z


class Purchase(db.Model):
    """
    Goods received from a supplier.

    Written by purchase_service.record_purchase() together with its items and
    the matching positive stock adjustments, in one transaction.
    """
    __tablename__ = "purchases"
    __table_args__ = (
        db.UniqueConstraint("purchase_number", name="uq_purchases_purchase_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    purchase_number = db.Column(db.String(64), nullable=False)

    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    total_cents = db.Column(db.Integer, nullable=False)
    paid_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    remaining_amount_cents = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default="completed")
    created_at = db.Column(db.DateTime, nullable=False, server_default=db.func.now())

    supplier = db.relationship("Supplier", backref=db.backref("purchases", lazy=True))

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "purchase_number": self.purchase_number,
            "supplier_id": self.supplier_id,
            "user_id": self.user_id,
            "total": format_money(self.total_cents),
            "paid_amount": format_money(self.paid_amount_cents),
            "remaining_amount": format_money(self.remaining_amount_cents),
            "total_cents": self.total_cents,
            "paid_amount_cents": self.paid_amount_cents,
            "remaining_amount_cents": self.remaining_amount_cents,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class PurchaseItem(db.Model):
    __tablename__ = "purchase_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    purchase_id = db.Column(db.Integer, db.ForeignKey("purchases.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_cost_cents = db.Column(db.Integer, nullable=False)
    total_cents = db.Column(db.Integer, nullable=False)

    purchase = db.relationship(
        "Purchase",
        backref=db.backref("items", lazy=True, order_by="PurchaseItem.id", cascade="all, delete-orphan", passive_deletes=True),
    )
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_id": self.purchase_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_cost": format_money(self.unit_cost_cents),
            "total": format_money(self.total_cents),
            "unit_cost_cents": self.unit_cost_cents,
            "total_cents": self.total_cents,
        }
