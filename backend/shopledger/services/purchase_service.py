# Overview: Service-layer operations for supplier purchases; receives stock in one transaction.

"""
Purchase Service

WHY: Goods bought from a supplier arrive as one document. The purchase row,
its items and the stock increments are written together so inventory never
shows stock without the purchase that explains it.

DESIGN:
- Supplier is REQUIRED on the document header
- Every line increments stock through inventory_service.apply_stock_delta()
- paid_amount defaults to the purchase total (paid on delivery)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from flask import current_app

from ..errors import InvalidRequest, NotFound
from ..extensions import db
from ..models import Product, Purchase, PurchaseItem, Supplier
from ..money import MAX_AMOUNT_CENTS, MAX_QUANTITY, format_money
from shopledger.time_utils import utcnow
from .concurrency import run_in_transaction
from .document_service import DOCUMENT_NUMBER_CONFLICTS, PURCHASE_PREFIX, generate_document_number
from .inventory_service import apply_stock_delta


@dataclass(frozen=True)
class PurchaseLine:
    product_id: int
    quantity: int
    unit_cost_cents: int


def _validate_lines(items: Iterable[PurchaseLine]) -> list[PurchaseLine]:
    lines = list(items or [])
    if not lines:
        raise InvalidRequest("Purchase has no items")

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
        if line.unit_cost_cents < 0:
            raise InvalidRequest(
                "unit_cost must not be negative",
                {"line": index, "product_id": line.product_id},
            )
        if line.quantity * line.unit_cost_cents > MAX_AMOUNT_CENTS:
            raise InvalidRequest(
                "Line total is too large",
                {"line": index, "product_id": line.product_id},
            )
    return lines


def record_purchase(
    *,
    supplier_id: int,
    items: Iterable[PurchaseLine],
    user_id: int,
    paid_amount_cents: int | None = None,
) -> Purchase:
    """
    Record a supplier purchase and receive its stock.

    Raises:
        InvalidRequest: no items, bad quantity/cost, unknown supplier or
            product, paid amount outside [0, total]
        StorageFailure: the transaction could not be committed
    """
    lines = _validate_lines(items)
    total = sum(line.quantity * line.unit_cost_cents for line in lines)
    if total > MAX_AMOUNT_CENTS:
        raise InvalidRequest("Purchase total is too large", {"total": format_money(total)})

    paid = total if paid_amount_cents is None else paid_amount_cents
    if paid < 0 or paid > total:
        raise InvalidRequest(
            "paid_amount must be between 0 and the purchase total",
            {"total": format_money(total), "paid_amount": format_money(paid)},
        )

    def _op() -> Purchase:
        if db.session.get(Supplier, supplier_id) is None:
            raise InvalidRequest(f"Supplier {supplier_id} not found", {"supplier_id": supplier_id})

        product_ids = {line.product_id for line in lines}
        known = {
            pid for (pid,) in db.session.query(Product.id).filter(Product.id.in_(product_ids)).all()
        }
        for index, line in enumerate(lines):
            if line.product_id not in known:
                raise InvalidRequest(
                    f"Product {line.product_id} not found",
                    {"line": index, "product_id": line.product_id},
                )

        purchase = Purchase(
            purchase_number=generate_document_number(PURCHASE_PREFIX),
            supplier_id=supplier_id,
            user_id=user_id,
            total_cents=total,
            paid_amount_cents=paid,
            remaining_amount_cents=total - paid,
            status="completed",
            created_at=utcnow(),
        )
        db.session.add(purchase)

        for line in lines:
            db.session.add(PurchaseItem(
                purchase=purchase,
                product_id=line.product_id,
                quantity=line.quantity,
                unit_cost_cents=line.unit_cost_cents,
                total_cents=line.quantity * line.unit_cost_cents,
            ))
        db.session.flush()

        for line in lines:
            apply_stock_delta(line.product_id, line.quantity, strict=True)

        return purchase

    purchase = run_in_transaction(_op, label="Purchase", retry_on=DOCUMENT_NUMBER_CONFLICTS)

    current_app.logger.info(
        "Purchase %s recorded: supplier_id=%s total=%s",
        purchase.purchase_number, purchase.supplier_id, format_money(purchase.total_cents),
    )
    return purchase


def get_purchase(purchase_id: int) -> Purchase:
    purchase = db.session.get(Purchase, purchase_id)
    if purchase is None:
        raise NotFound(f"Purchase {purchase_id} not found", {"purchase_id": purchase_id})
    return purchase
