# Overview: Flask API routes for the dashboard and the store settings record.

from flask import Blueprint, current_app, jsonify

from ..errors import LedgerError
from ..decorators import require_role, require_user
from ..models.auth import ROLE_ADMIN
from ..services import reporting_service, settings_service
from .common import error_response, json_body


dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api")


@dashboard_bp.get("/dashboard")
@require_user
def dashboard_route():
    """Headline figures; zeros on an empty database."""
    try:
        settings = settings_service.load_store_settings()
        return jsonify(reporting_service.dashboard_stats(settings)), 200
    except Exception:
        current_app.logger.exception("Failed to compute dashboard stats")
        return jsonify({"error": "Internal server error"}), 500


@dashboard_bp.get("/store-settings")
@require_user
def get_store_settings_route():
    return jsonify({"settings": settings_service.load_store_settings().to_dict()}), 200


@dashboard_bp.put("/store-settings")
@require_user
@require_role(ROLE_ADMIN)
def update_store_settings_route():
    try:
        record = settings_service.update_store_settings(json_body())
        return jsonify({"settings": record.to_dict()}), 200
    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update store settings")
        return jsonify({"error": "Internal server error"}), 500
