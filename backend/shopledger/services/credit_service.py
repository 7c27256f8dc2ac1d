# Overview: Service-layer operations for store credit; reconciles payments against sales and customer debt.

"""
Credit Payment Service

WHY: Credit and installment sales leave a remaining balance on the sale and
the same amount on the customer's total debt. Each payment must move value
from "remaining" to "paid" on the sale and reduce the customer's debt by the
same amount, in one transaction.

DESIGN PRINCIPLES:
- Payments are immutable rows (credit_payments); never edited or deleted
- Balances change only through relative UPDATEs (no read-modify-write)
- paid_amount + remaining_amount == total holds after every payment
- Overpayment guard is a WHERE condition on the sale UPDATE (strict policy)
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import case, update

from ..errors import ConsistencyViolation, InvalidRequest, NotFound
from ..extensions import db
from ..models import CreditPayment, Customer, Sale
from ..models.sales import (
    PAYMENT_STATUS_OVERPAID,
    PAYMENT_STATUS_PAID,
    PAYMENT_STATUS_PARTIAL,
    SALE_STATUS_CANCELLED,
)
from ..money import MAX_AMOUNT_CENTS, format_money
from ..policy import LedgerPolicy, current_policy
from shopledger.time_utils import utcnow
from .concurrency import lock_for_update, run_in_transaction


# =============================================================================
# PAYMENT RECORDING
# =============================================================================

def record_payment(
    *,
    sale_id: int,
    customer_id: int,
    amount_cents: int,
    user_id: int,
    note: str | None = None,
    policy: LedgerPolicy | None = None,
) -> CreditPayment:
    """
    Record a payment against a credit/installment sale.

    Args:
        sale_id: Sale being paid down
        customer_id: Customer the sale belongs to
        amount_cents: Amount received (must be > 0)
        user_id: User recording the payment
        note: Free-text note (optional)

    Returns:
        CreditPayment record

    Raises:
        InvalidRequest: non-positive amount, sale belongs to another customer,
            or sale is cancelled
        NotFound: sale or customer does not exist
        ConsistencyViolation: strict overpayment policy and amount exceeds
            the sale's remaining balance
    """
    if isinstance(amount_cents, bool) or not isinstance(amount_cents, int) or amount_cents <= 0:
        raise InvalidRequest("Payment amount must be positive", {"field": "amount"})
    if amount_cents > MAX_AMOUNT_CENTS:
        raise InvalidRequest("Payment amount is too large", {"field": "amount"})

    policy = policy or current_policy()

    def _op() -> CreditPayment:
        sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
        if not sale:
            raise NotFound(f"Sale {sale_id} not found", {"sale_id": sale_id})

        customer = lock_for_update(db.session.query(Customer).filter_by(id=customer_id)).first()
        if not customer:
            raise NotFound(f"Customer {customer_id} not found", {"customer_id": customer_id})

        if sale.customer_id != customer.id:
            raise InvalidRequest(
                "Sale does not belong to this customer",
                {"sale_id": sale.id, "customer_id": customer.id},
            )

        if sale.status == SALE_STATUS_CANCELLED:
            raise InvalidRequest("Cannot record payment against a cancelled sale", {"sale_id": sale.id})

        remaining_before = sale.remaining_amount_cents
        remaining_after = Sale.remaining_amount_cents - amount_cents

        sale_stmt = (
            update(Sale)
            .where(Sale.id == sale.id)
            .values(
                paid_amount_cents=Sale.paid_amount_cents + amount_cents,
                remaining_amount_cents=remaining_after,
                payment_status=case(
                    (remaining_after < 0, PAYMENT_STATUS_OVERPAID),
                    (remaining_after == 0, PAYMENT_STATUS_PAID),
                    else_=PAYMENT_STATUS_PARTIAL,
                ),
            )
        )
        if policy.strict_overpayment:
            sale_stmt = sale_stmt.where(Sale.remaining_amount_cents >= amount_cents)

        result = db.session.execute(sale_stmt.execution_options(synchronize_session=False))
        if result.rowcount != 1:
            raise ConsistencyViolation(
                "Payment exceeds the sale's remaining balance",
                details={
                    "sale_id": sale.id,
                    "amount": format_money(amount_cents),
                    "remaining_amount": format_money(remaining_before),
                },
            )

        db.session.execute(
            update(Customer)
            .where(Customer.id == customer.id)
            .values(total_debt_cents=Customer.total_debt_cents - amount_cents)
            .execution_options(synchronize_session=False)
        )

        payment = CreditPayment(
            sale_id=sale.id,
            customer_id=customer.id,
            amount_cents=amount_cents,
            payment_date=utcnow(),
            user_id=user_id,
            note=(note or "").strip() or None,
        )
        db.session.add(payment)
        db.session.flush()
        return payment

    payment = run_in_transaction(_op, label="Credit payment")

    current_app.logger.info(
        "Credit payment %s recorded: sale_id=%s customer_id=%s amount=%s",
        payment.id, payment.sale_id, payment.customer_id, format_money(payment.amount_cents),
    )
    return payment


# =============================================================================
# QUERIES
# =============================================================================

def list_credit_payments(customer_id: int | None = None) -> list[CreditPayment]:
    """Payments newest first, optionally for one customer."""
    query = db.session.query(CreditPayment)
    if customer_id is not None:
        query = query.filter(CreditPayment.customer_id == customer_id)
    return query.order_by(CreditPayment.payment_date.desc(), CreditPayment.id.desc()).all()


def customer_statement(customer_id: int) -> dict:
    """
    Accounts-receivable view of one customer.

    Returns:
        - customer: customer record including total_debt
        - open_sales: sales with a remaining balance, oldest first
        - open_balance: sum of remaining amounts over open sales
        - payments: credit payments, newest first
    """
    customer = db.session.get(Customer, customer_id)
    if customer is None:
        raise NotFound(f"Customer {customer_id} not found", {"customer_id": customer_id})

    open_sales = (
        db.session.query(Sale)
        .filter(Sale.customer_id == customer_id, Sale.remaining_amount_cents > 0)
        .order_by(Sale.created_at.asc(), Sale.id.asc())
        .all()
    )
    open_balance = sum(s.remaining_amount_cents for s in open_sales)

    return {
        "customer": customer.to_dict(),
        "open_sales": [s.to_dict() for s in open_sales],
        "open_balance": format_money(open_balance),
        "open_balance_cents": open_balance,
        "payments": [p.to_dict() for p in list_credit_payments(customer_id)],
    }
