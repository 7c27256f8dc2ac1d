# Overview: Flask API routes for product lookups used at the register.

from flask import Blueprint, current_app, jsonify

from ..errors import LedgerError
from ..decorators import require_user
from ..services import inventory_service
from .common import error_response


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("/barcode/<barcode>")
@require_user
def lookup_barcode_route(barcode: str):
    """Resolve a scanned barcode to a product (404 when unknown)."""
    try:
        product = inventory_service.lookup_product_by_barcode(barcode)
        return jsonify({"product": product.to_dict()}), 200
    except LedgerError as e:
        return error_response(e)


@products_bp.get("/low-stock")
@require_user
def low_stock_route():
    try:
        products = inventory_service.list_low_stock()
        return jsonify({"products": [p.to_dict() for p in products]}), 200
    except Exception:
        current_app.logger.exception("Failed to list low-stock products")
        return jsonify({"error": "Internal server error"}), 500
