"""
Sales Service - cart to persisted sale in one transaction

WHY: A sale touches four things at once: the sale row, its items, product
stock and (for credit/installment) the customer's debt. They are written in
a single unit of work so no reader ever sees a sale without its stock
decrement or debt increase.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from flask import current_app
from sqlalchemy import update

from ..errors import InvalidRequest, NotFound
from ..extensions import db
from ..models import Customer, Product, Sale, SaleItem
from ..models.sales import (
    PAYMENT_STATUS_PAID,
    PAYMENT_STATUS_PARTIAL,
    PAYMENT_STATUS_UNPAID,
    PAYMENT_TYPE_CASH,
    PAYMENT_TYPE_INSTALLMENT,
    SALE_STATUS_COMPLETED,
    VALID_PAYMENT_TYPES,
)
from ..money import MAX_AMOUNT_CENTS, MAX_QUANTITY, format_money, percent_of
from ..policy import LedgerPolicy, current_policy
from shopledger.time_utils import utcnow
from .concurrency import run_in_transaction
from .document_service import DOCUMENT_NUMBER_CONFLICTS, SALE_PREFIX, generate_document_number
from .inventory_service import apply_stock_delta


@dataclass(frozen=True)
class CartLine:
    """One requested line; unit_price_cents None means "current sell price"."""
    product_id: int
    quantity: int
    unit_price_cents: int | None = None


@dataclass(frozen=True)
class PricedLine:
    product_id: int
    quantity: int
    unit_price_cents: int

    @property
    def total_cents(self) -> int:
        return self.quantity * self.unit_price_cents


@dataclass(frozen=True)
class SaleTotals:
    subtotal_cents: int
    discount_cents: int
    total_cents: int
    paid_amount_cents: int
    remaining_amount_cents: int

    @property
    def payment_status(self) -> str:
        if self.remaining_amount_cents <= 0:
            return PAYMENT_STATUS_PAID
        if self.paid_amount_cents > 0:
            return PAYMENT_STATUS_PARTIAL
        return PAYMENT_STATUS_UNPAID


def _validate_cart(cart: Iterable[CartLine]) -> list[CartLine]:
    lines = list(cart or [])
    if not lines:
        raise InvalidRequest("Cart is empty")

    for index, line in enumerate(lines):
        if isinstance(line.quantity, bool) or not isinstance(line.quantity, int) or line.quantity <= 0:
            raise InvalidRequest(
                "quantity must be a positive integer",
                {"line": index, "product_id": line.product_id},
            )
        if line.quantity > MAX_QUANTITY:
            raise InvalidRequest(
                f"quantity must not exceed {MAX_QUANTITY}",
                {"line": index, "product_id": line.product_id, "quantity": line.quantity},
            )
        if line.unit_price_cents is not None and line.unit_price_cents < 0:
            raise InvalidRequest(
                "unit_price must not be negative",
                {"line": index, "product_id": line.product_id},
            )
        if line.unit_price_cents is not None and line.unit_price_cents > MAX_AMOUNT_CENTS:
            raise InvalidRequest(
                "unit_price is too large",
                {"line": index, "product_id": line.product_id},
            )
    return lines


def calculate_discount(
    subtotal_cents: int,
    *,
    discount_percent: Decimal | None = None,
    discount_cents: int | None = None,
) -> int:
    """
    Discount in cents for a subtotal.

    Accepts either a percentage of the subtotal (rounded half-up to the cent)
    or an absolute amount. The result is clamped to [0, subtotal].
    """
    if discount_percent is not None and discount_cents is not None:
        raise InvalidRequest("Provide either discount or discount_percent, not both")

    if discount_percent is not None:
        amount = percent_of(subtotal_cents, Decimal(discount_percent))
    else:
        amount = discount_cents or 0

    return max(0, min(amount, subtotal_cents))


def calculate_totals(
    lines: list[PricedLine],
    *,
    payment_type: str,
    discount_percent: Decimal | None = None,
    discount_cents: int | None = None,
    initial_payment_cents: int = 0,
) -> SaleTotals:
    """
    Sale totals in integer cents.

    cash        -> paid = total, remaining = 0
    credit      -> paid = 0, remaining = total
    installment -> paid = initial payment, remaining = total - paid
    """
    for index, line in enumerate(lines):
        if line.total_cents > MAX_AMOUNT_CENTS:
            raise InvalidRequest(
                "Line total is too large",
                {"line": index, "product_id": line.product_id, "total": format_money(line.total_cents)},
            )

    subtotal = sum(line.total_cents for line in lines)
    if subtotal > MAX_AMOUNT_CENTS:
        raise InvalidRequest("Sale subtotal is too large", {"subtotal": format_money(subtotal)})

    discount = calculate_discount(subtotal, discount_percent=discount_percent, discount_cents=discount_cents)
    total = subtotal - discount

    if payment_type == PAYMENT_TYPE_CASH:
        paid = total
    elif payment_type == PAYMENT_TYPE_INSTALLMENT:
        if initial_payment_cents < 0 or initial_payment_cents > total:
            raise InvalidRequest(
                "initial_payment must be between 0 and the sale total",
                {"total": format_money(total), "initial_payment": format_money(initial_payment_cents)},
            )
        paid = initial_payment_cents
    else:
        paid = 0

    return SaleTotals(
        subtotal_cents=subtotal,
        discount_cents=discount,
        total_cents=total,
        paid_amount_cents=paid,
        remaining_amount_cents=total - paid,
    )


def _price_lines(lines: list[CartLine], policy: LedgerPolicy) -> list[PricedLine]:
    """Resolve products and unit prices; rejects unknown or inactive products."""
    product_ids = {line.product_id for line in lines}
    products = {
        p.id: p
        for p in db.session.query(Product).filter(Product.id.in_(product_ids)).all()
    }

    priced = []
    for index, line in enumerate(lines):
        product = products.get(line.product_id)
        if product is None:
            raise InvalidRequest(
                f"Product {line.product_id} not found",
                {"line": index, "product_id": line.product_id},
            )
        if not product.is_active:
            raise InvalidRequest(
                f"Product {line.product_id} is inactive",
                {"line": index, "product_id": line.product_id},
            )

        unit_price = line.unit_price_cents
        if unit_price is None:
            unit_price = product.sell_price_cents
        elif unit_price != product.sell_price_cents and not policy.allow_price_override:
            raise InvalidRequest(
                "unit_price does not match the current sell price",
                {
                    "line": index,
                    "product_id": product.id,
                    "unit_price": format_money(unit_price),
                    "sell_price": format_money(product.sell_price_cents),
                },
            )

        priced.append(PricedLine(product_id=product.id, quantity=line.quantity, unit_price_cents=unit_price))
    return priced


def complete_sale(
    *,
    cart: Iterable[CartLine],
    user_id: int,
    payment_type: str,
    customer_id: int | None = None,
    discount_percent: Decimal | None = None,
    discount_cents: int | None = None,
    initial_payment_cents: int = 0,
    policy: LedgerPolicy | None = None,
) -> Sale:
    """
    Convert a cart into a persisted sale.

    In one transaction: insert the sale and its items, decrement stock for
    every line, and for credit/installment sales add the remaining amount to
    the customer's debt. Any failure leaves no trace.

    Raises:
        InvalidRequest: empty cart, bad quantity/payment type/discount,
            unknown or inactive product, unknown customer, price mismatch
        ConsistencyViolation: strict stock policy and not enough stock
        StorageFailure: the transaction could not be committed
    """
    lines = _validate_cart(cart)

    if payment_type not in VALID_PAYMENT_TYPES:
        raise InvalidRequest(
            f"Invalid payment_type: {payment_type}. Must be one of {list(VALID_PAYMENT_TYPES)}",
            {"field": "payment_type"},
        )
    if payment_type != PAYMENT_TYPE_CASH and customer_id is None:
        raise InvalidRequest("customer_id is required for credit and installment sales", {"field": "customer_id"})
    if initial_payment_cents and payment_type != PAYMENT_TYPE_INSTALLMENT:
        raise InvalidRequest("initial_payment is only accepted for installment sales", {"field": "initial_payment"})

    policy = policy or current_policy()

    def _op() -> Sale:
        if customer_id is not None and db.session.get(Customer, customer_id) is None:
            raise InvalidRequest(f"Customer {customer_id} not found", {"customer_id": customer_id})

        priced = _price_lines(lines, policy)
        totals = calculate_totals(
            priced,
            payment_type=payment_type,
            discount_percent=discount_percent,
            discount_cents=discount_cents,
            initial_payment_cents=initial_payment_cents,
        )

        sale = Sale(
            sale_number=generate_document_number(SALE_PREFIX),
            customer_id=customer_id,
            user_id=user_id,
            payment_type=payment_type,
            subtotal_cents=totals.subtotal_cents,
            discount_cents=totals.discount_cents,
            total_cents=totals.total_cents,
            paid_amount_cents=totals.paid_amount_cents,
            remaining_amount_cents=totals.remaining_amount_cents,
            status=SALE_STATUS_COMPLETED,
            payment_status=totals.payment_status,
            created_at=utcnow(),
        )
        db.session.add(sale)

        for line in priced:
            db.session.add(SaleItem(
                sale=sale,
                product_id=line.product_id,
                quantity=line.quantity,
                unit_price_cents=line.unit_price_cents,
                total_cents=line.total_cents,
            ))
        db.session.flush()

        for line in priced:
            apply_stock_delta(line.product_id, -line.quantity, strict=policy.strict_stock)

        if payment_type != PAYMENT_TYPE_CASH and customer_id is not None and totals.remaining_amount_cents:
            db.session.execute(
                update(Customer)
                .where(Customer.id == customer_id)
                .values(total_debt_cents=Customer.total_debt_cents + totals.remaining_amount_cents)
                .execution_options(synchronize_session=False)
            )

        return sale

    sale = run_in_transaction(_op, label="Sale", retry_on=DOCUMENT_NUMBER_CONFLICTS)

    current_app.logger.info(
        "Sale %s completed: total=%s payment_type=%s customer_id=%s",
        sale.sale_number, format_money(sale.total_cents), sale.payment_type, sale.customer_id,
    )
    return sale


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise NotFound(f"Sale {sale_id} not found", {"sale_id": sale_id})
    return sale
