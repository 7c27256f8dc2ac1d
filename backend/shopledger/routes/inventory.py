# Overview: Flask API routes for manual stock adjustments.

from flask import Blueprint, current_app, g, jsonify

from ..errors import LedgerError
from ..decorators import require_role, require_user
from ..models.auth import ROLE_ADMIN
from ..services import inventory_service
from ..validation import parse_int
from .common import error_response, json_body


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.post("/adjust")
@require_user
@require_role(ROLE_ADMIN)
def adjust_stock_route():
    """
    Apply a signed stock correction.

    Body: {product_id, quantity_delta}
    """
    try:
        data = json_body()
        product_id = parse_int(data.get("product_id"), "product_id", positive=True)
        delta = parse_int(data.get("quantity_delta"), "quantity_delta")

        product = inventory_service.adjust_stock(product_id, delta)
        current_app.logger.info("Manual adjustment by user_id=%s", g.current_user.id)
        return jsonify({"product": product.to_dict()}), 200

    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return jsonify({"error": "Internal server error"}), 500
