# Overview: Flask API routes for credit payments and customer statements.

from flask import Blueprint, current_app, g, jsonify, request

from ..errors import InvalidRequest, LedgerError
from ..decorators import require_user
from ..services import credit_service
from ..validation import parse_int
from .common import error_response, json_body, optional_money


credit_bp = Blueprint("credit", __name__, url_prefix="/api")


@credit_bp.post("/credit-payments")
@require_user
def record_payment_route():
    """
    Record a payment against a credit/installment sale.

    Body: {sale_id, customer_id, amount, note?}
    """
    try:
        data = json_body()
        amount = optional_money(data, "amount")
        if amount is None:
            raise InvalidRequest("amount is required", {"field": "amount"})

        payment = credit_service.record_payment(
            sale_id=parse_int(data.get("sale_id"), "sale_id", positive=True),
            customer_id=parse_int(data.get("customer_id"), "customer_id", positive=True),
            amount_cents=amount,
            user_id=g.current_user.id,
            note=data.get("note"),
        )
        return jsonify({"payment": payment.to_dict()}), 201

    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record credit payment")
        return jsonify({"error": "Internal server error"}), 500


@credit_bp.get("/credit-payments")
@require_user
def list_payments_route():
    try:
        customer_id = parse_int(request.args.get("customer_id"), "customer_id", positive=True, allow_none=True)
        payments = credit_service.list_credit_payments(customer_id)
        return jsonify({"payments": [p.to_dict() for p in payments]}), 200
    except LedgerError as e:
        return error_response(e)


@credit_bp.get("/customers/<int:customer_id>/statement")
@require_user
def customer_statement_route(customer_id: int):
    try:
        return jsonify(credit_service.customer_statement(customer_id)), 200
    except LedgerError as e:
        return error_response(e)
