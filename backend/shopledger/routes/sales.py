# Overview: Flask API routes for sales; parses carts and returns JSON responses.

# backend/shopledger/routes/sales.py
"""Sales API routes"""

from flask import Blueprint, current_app, g, jsonify, request

from ..errors import InvalidRequest, LedgerError
from ..decorators import require_user
from ..services import reporting_service, sales_service
from ..validation import parse_int
from .common import error_response, json_body, optional_money, optional_percent, parse_cart


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@require_user
def create_sale_route():
    """
    Complete a sale from a cart.

    Body:
        payment_type: cash | credit | installment
        customer_id: required for credit/installment
        discount or discount_percent: optional, not both
        initial_payment: installment down payment (optional)
        items: [{product_id, quantity, unit_price?}]
    """
    try:
        data = json_body()

        if data.get("discount") is not None and data.get("discount_percent") is not None:
            raise InvalidRequest("Provide either discount or discount_percent, not both")

        sale = sales_service.complete_sale(
            cart=parse_cart(data),
            user_id=g.current_user.id,
            payment_type=str(data.get("payment_type") or "").strip().lower(),
            customer_id=parse_int(data.get("customer_id"), "customer_id", positive=True, allow_none=True),
            discount_percent=optional_percent(data, "discount_percent"),
            discount_cents=optional_money(data, "discount"),
            initial_payment_cents=optional_money(data, "initial_payment") or 0,
        )
        return jsonify({"sale": sale.to_dict(include_items=True)}), 201

    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/stats")
@require_user
def sales_stats_route():
    """Count and total of sales in [start, end); both query params optional."""
    try:
        stats = reporting_service.sales_stats(request.args.get("start"), request.args.get("end"))
        return jsonify(stats), 200
    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to compute sales stats")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<int:sale_id>")
@require_user
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(sale_id)
        return jsonify({"sale": sale.to_dict(include_items=True)}), 200
    except LedgerError as e:
        return error_response(e)
