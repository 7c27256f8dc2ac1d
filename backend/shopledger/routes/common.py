# Overview: Request parsing and error-response helpers shared by the API blueprints.

from __future__ import annotations

from decimal import Decimal

from flask import jsonify, request

from ..errors import InvalidRequest, LedgerError
from ..money import parse_money, to_decimal
from ..services.purchase_service import PurchaseLine
from ..services.sales_service import CartLine
from ..validation import parse_int


def error_response(exc: LedgerError):
    return jsonify(exc.to_dict()), exc.http_status


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidRequest("Request body must be a JSON object")
    return data


def optional_money(data: dict, field: str) -> int | None:
    value = data.get(field)
    if value is None:
        return None
    return parse_money(value, field)


def optional_percent(data: dict, field: str) -> Decimal | None:
    value = data.get(field)
    if value is None:
        return None
    percent = to_decimal(value, field)
    if percent < 0 or percent > 100:
        raise InvalidRequest(f"{field} must be between 0 and 100", {"field": field})
    return percent


def _items(data: dict) -> list[dict]:
    items = data.get("items")
    if not isinstance(items, list) or not items:
        raise InvalidRequest("items must be a non-empty list", {"field": "items"})
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise InvalidRequest("Each item must be an object", {"line": index})
    return items


def parse_cart(data: dict) -> list[CartLine]:
    """items: [{product_id, quantity, unit_price?}] -> CartLine list."""
    lines = []
    for item in _items(data):
        lines.append(CartLine(
            product_id=parse_int(item.get("product_id"), "product_id", positive=True),
            quantity=parse_int(item.get("quantity"), "quantity", positive=True),
            unit_price_cents=optional_money(item, "unit_price"),
        ))
    return lines


def parse_purchase_lines(data: dict) -> list[PurchaseLine]:
    """items: [{product_id, quantity, unit_cost}] -> PurchaseLine list."""
    lines = []
    for item in _items(data):
        unit_cost = optional_money(item, "unit_cost")
        if unit_cost is None:
            raise InvalidRequest("unit_cost is required", {"field": "unit_cost"})
        lines.append(PurchaseLine(
            product_id=parse_int(item.get("product_id"), "product_id", positive=True),
            quantity=parse_int(item.get("quantity"), "quantity", positive=True),
            unit_cost_cents=unit_cost,
        ))
    return lines
