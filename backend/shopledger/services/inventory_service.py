# Overview: Service-layer operations for inventory; encapsulates stock changes and product lookups.

# backend/shopledger/services/inventory_service.py

from flask import current_app
from sqlalchemy import update

from ..errors import ConsistencyViolation, InvalidRequest, NotFound
from ..extensions import db
from ..models import Product
from ..money import MAX_QUANTITY
from ..policy import LedgerPolicy, current_policy
from .concurrency import run_in_transaction
"""
Inventory invariants (authoritative)

Stock model:
- Product.stock is an on-hand counter, changed only by relative UPDATEs
  issued from apply_stock_delta(). Nothing reads stock into Python, adds to
  it and writes it back.
- Sales apply negative deltas, purchases positive deltas, manual adjustments
  either sign.

Floor policy:
- strict: a negative delta carries "stock >= -delta" in its WHERE clause, so
  the database decides atomically whether enough stock remains. A zero row
  count means ConsistencyViolation and the caller's transaction rolls back.
- permissive: no floor; stock may go negative (oversold inventory).
"""


def apply_stock_delta(product_id: int, delta: int, *, strict: bool) -> None:
    """
    Apply stock += delta inside the caller's transaction (no commit).

    Raises NotFound if the product does not exist and ConsistencyViolation
    if the strict floor would be crossed.
    """
    stmt = (
        update(Product)
        .where(Product.id == product_id)
        .values(stock=Product.stock + delta)
    )
    if strict and delta < 0:
        stmt = stmt.where(Product.stock >= -delta)

    result = db.session.execute(stmt.execution_options(synchronize_session=False))
    if result.rowcount == 1:
        return

    row = db.session.query(Product.id, Product.stock).filter(Product.id == product_id).first()
    if row is None:
        raise NotFound(f"Product {product_id} not found", {"product_id": product_id})

    raise ConsistencyViolation(
        "Insufficient stock",
        details={
            "product_id": product_id,
            "requested_quantity": -delta,
            "on_hand": row.stock,
        },
    )


def adjust_stock(product_id: int, delta: int, *, policy: LedgerPolicy | None = None) -> Product:
    """
    Apply a standalone signed stock adjustment and return the updated product.

    This is the same primitive the sale and purchase flows use, run as its
    own transaction (manual corrections, shrinkage, found stock).
    """
    if isinstance(delta, bool) or not isinstance(delta, int) or delta == 0:
        raise InvalidRequest("quantity_delta must be a non-zero integer", {"field": "quantity_delta"})
    if abs(delta) > MAX_QUANTITY:
        raise InvalidRequest(f"quantity_delta must not exceed {MAX_QUANTITY}", {"field": "quantity_delta"})

    policy = policy or current_policy()

    def _op():
        apply_stock_delta(product_id, delta, strict=policy.strict_stock)
        return product_id

    run_in_transaction(_op, label="Stock adjustment")
    current_app.logger.info("Stock adjusted: product_id=%s delta=%+d", product_id, delta)

    return db.session.get(Product, product_id, populate_existing=True)


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFound(f"Product {product_id} not found", {"product_id": product_id})
    return product


def lookup_product_by_barcode(barcode: str) -> Product:
    """Resolve a scanned barcode to its product."""
    code = (barcode or "").strip()
    if not code:
        raise InvalidRequest("barcode is required", {"field": "barcode"})

    product = db.session.query(Product).filter(Product.barcode == code).first()
    if product is None:
        raise NotFound(f"No product with barcode {code}", {"barcode": code})
    return product


def list_low_stock() -> list[Product]:
    """Active products at or below their minimum stock threshold, lowest stock first."""
    return (
        db.session.query(Product)
        .filter(Product.is_active.is_(True), Product.stock <= Product.min_stock)
        .order_by(Product.stock.asc(), Product.name.asc())
        .all()
    )
