from __future__ import annotations

from ..extensions import db
from shopledger.money import format_money
from shopledger.time_utils import to_utc_z

PAYMENT_TYPE_CASH = "cash"
PAYMENT_TYPE_CREDIT = "credit"
PAYMENT_TYPE_INSTALLMENT = "installment"
VALID_PAYMENT_TYPES = (PAYMENT_TYPE_CASH, PAYMENT_TYPE_CREDIT, PAYMENT_TYPE_INSTALLMENT)

SALE_STATUS_COMPLETED = "completed"
SALE_STATUS_PENDING = "pending"
SALE_STATUS_CANCELLED = "cancelled"

PAYMENT_STATUS_UNPAID = "UNPAID"
PAYMENT_STATUS_PARTIAL = "PARTIAL"
PAYMENT_STATUS_PAID = "PAID"
PAYMENT_STATUS_OVERPAID = "OVERPAID"


class Sale(db.Model):
    """
    Completed point-of-sale transaction (financial record, never deleted).

    INVARIANTS (all amounts in cents):
    - total = subtotal - discount
    - paid_amount + remaining_amount = total, at creation and after every
      credit payment (payments move value from remaining to paid)

    Created once, together with its items, by sales_service.complete_sale().
    Afterwards only credit_service touches paid/remaining/payment_status.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("sale_number", name="uq_sales_sale_number"),
        db.Index("ix_sales_created_at", "created_at"),
        db.Index("ix_sales_customer_remaining", "customer_id", "remaining_amount_cents"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable number (e.g. "SAL-20261019-142501-9F3A1C")
    sale_number = db.Column(db.String(64), nullable=False)

    # Absent customer means an anonymous cash sale
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    payment_type = db.Column(db.String(16), nullable=False, index=True)

    subtotal_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False)
    paid_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    remaining_amount_cents = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default=SALE_STATUS_COMPLETED)
    payment_status = db.Column(db.String(16), nullable=False, default=PAYMENT_STATUS_UNPAID, index=True)

    created_at = db.Column(db.DateTime, nullable=False, server_default=db.func.now())

    customer = db.relationship("Customer", backref=db.backref("sales", lazy=True))
    user = db.relationship("User", backref=db.backref("sales", lazy=True))

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "sale_number": self.sale_number,
            "customer_id": self.customer_id,
            "user_id": self.user_id,
            "payment_type": self.payment_type,
            "subtotal": format_money(self.subtotal_cents),
            "discount": format_money(self.discount_cents),
            "total": format_money(self.total_cents),
            "paid_amount": format_money(self.paid_amount_cents),
            "remaining_amount": format_money(self.remaining_amount_cents),
            "subtotal_cents": self.subtotal_cents,
            "discount_cents": self.discount_cents,
            "total_cents": self.total_cents,
            "paid_amount_cents": self.paid_amount_cents,
            "remaining_amount_cents": self.remaining_amount_cents,
            "status": self.status,
            "payment_status": self.payment_status,
            "created_at": to_utc_z(self.created_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SaleItem(db.Model):
    """Line item of a sale. Immutable; unit price is a snapshot."""
    __tablename__ = "sale_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    total_cents = db.Column(db.Integer, nullable=False)

    sale = db.relationship(
        "Sale",
        backref=db.backref("items", lazy=True, order_by="SaleItem.id", cascade="all, delete-orphan", passive_deletes=True),
    )
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price": format_money(self.unit_price_cents),
            "total": format_money(self.total_cents),
            "unit_price_cents": self.unit_price_cents,
            "total_cents": self.total_cents,
        }


class CreditPayment(db.Model):
    """
    Payment received against one credit/installment sale.

    IMMUTABLE: Records are never updated or deleted. Each row was written in
    the same transaction that decremented the customer's debt and moved the
    amount from the sale's remaining balance to its paid amount.
    """
    __tablename__ = "credit_payments"
    __table_args__ = (
        db.Index("ix_credit_payments_customer_date", "customer_id", "payment_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)

    amount_cents = db.Column(db.Integer, nullable=False)

    payment_date = db.Column(db.DateTime, nullable=False, server_default=db.func.now())
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    note = db.Column(db.Text, nullable=True)

    sale = db.relationship("Sale", backref=db.backref("credit_payments", lazy=True))
    customer = db.relationship("Customer", backref=db.backref("credit_payments", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "customer_id": self.customer_id,
            "amount": format_money(self.amount_cents),
            "amount_cents": self.amount_cents,
            "payment_date": to_utc_z(self.payment_date),
            "user_id": self.user_id,
            "note": self.note,
        }
