# Overview: Flask API routes for supplier purchases.

from flask import Blueprint, current_app, g, jsonify

from ..errors import LedgerError
from ..decorators import require_role, require_user
from ..models.auth import ROLE_ADMIN
from ..services import purchase_service
from ..validation import parse_int
from .common import error_response, json_body, optional_money, parse_purchase_lines


purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/purchases")


@purchases_bp.post("")
@require_user
@require_role(ROLE_ADMIN)
def create_purchase_route():
    """
    Receive goods from a supplier.

    Body: {supplier_id, paid_amount?, items: [{product_id, quantity, unit_cost}]}
    """
    try:
        data = json_body()
        purchase = purchase_service.record_purchase(
            supplier_id=parse_int(data.get("supplier_id"), "supplier_id", positive=True),
            items=parse_purchase_lines(data),
            user_id=g.current_user.id,
            paid_amount_cents=optional_money(data, "paid_amount"),
        )
        return jsonify({"purchase": purchase.to_dict(include_items=True)}), 201

    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record purchase")
        return jsonify({"error": "Internal server error"}), 500


@purchases_bp.get("/<int:purchase_id>")
@require_user
def get_purchase_route(purchase_id: int):
    try:
        purchase = purchase_service.get_purchase(purchase_id)
        return jsonify({"purchase": purchase.to_dict(include_items=True)}), 200
    except LedgerError as e:
        return error_response(e)
