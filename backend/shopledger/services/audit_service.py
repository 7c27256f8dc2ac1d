# Overview: Read-only consistency checks over sales and customer debt.

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import Customer, Sale
from ..models.sales import PAYMENT_TYPE_CASH
from ..money import format_money


def audit_sale_identities() -> list[dict]:
    """Sales where total != subtotal - discount or paid + remaining != total."""
    rows = (
        db.session.query(Sale)
        .filter(
            (Sale.total_cents != Sale.subtotal_cents - Sale.discount_cents)
            | (Sale.paid_amount_cents + Sale.remaining_amount_cents != Sale.total_cents)
        )
        .order_by(Sale.id.asc())
        .all()
    )
    return [
        {
            "kind": "sale",
            "sale_id": sale.id,
            "sale_number": sale.sale_number,
            "subtotal": format_money(sale.subtotal_cents),
            "discount": format_money(sale.discount_cents),
            "total": format_money(sale.total_cents),
            "paid_amount": format_money(sale.paid_amount_cents),
            "remaining_amount": format_money(sale.remaining_amount_cents),
        }
        for sale in rows
    ]


def audit_customer_debt() -> list[dict]:
    """
    Compare every customer's stored debt with the open balance of their
    non-cash sales, then append any sale-level identity breaks.

    Returns an empty list when the ledger is consistent.
    """
    expected = dict(
        db.session.query(
            Sale.customer_id,
            func.coalesce(func.sum(Sale.remaining_amount_cents), 0),
        )
        .filter(Sale.customer_id.isnot(None), Sale.payment_type != PAYMENT_TYPE_CASH)
        .group_by(Sale.customer_id)
        .all()
    )

    discrepancies = []
    for customer in db.session.query(Customer).order_by(Customer.id.asc()).all():
        want = int(expected.get(customer.id, 0))
        if customer.total_debt_cents != want:
            discrepancies.append({
                "kind": "customer_debt",
                "customer_id": customer.id,
                "customer_name": customer.name,
                "stored_debt": format_money(customer.total_debt_cents),
                "expected_debt": format_money(want),
                "difference": format_money(customer.total_debt_cents - want),
            })

    discrepancies.extend(audit_sale_identities())
    return discrepancies
