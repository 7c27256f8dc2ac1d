from __future__ import annotations

from ..extensions import db
from shopledger.money import format_money
from shopledger.time_utils import to_utc_z


class Customer(db.Model):
    """
    Customer directory entry with an accounts-receivable balance.

    DEBT INVARIANT: total_debt_cents equals the sum of remaining_amount_cents
    over this customer's non-cash sales. It is changed only by relative
    UPDATEs: sales_service adds a new sale's remaining amount, credit_service
    subtracts each payment. audit_service.audit_customer_debt() verifies it.
    """
    __tablename__ = "customers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    address = db.Column(db.Text, nullable=True)

    # Signed; expected >= 0 in normal operation
    total_debt_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "total_debt": format_money(self.total_debt_cents),
            "total_debt_cents": self.total_debt_cents,
            "created_at": to_utc_z(self.created_at),
        }
