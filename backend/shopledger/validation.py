from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import InvalidRequest

# Signed 64-bit range of an SQL INTEGER column
MAX_SQL_INTEGER = 2**63 - 1


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def parse_int(value: Any, field: str, *, positive: bool = False, allow_none: bool = False) -> int | None:
    """
    Strict integer parsing for ids and quantities.

    Rejects bools, floats, scientific notation and decimal strings.
    """
    if value is None:
        if allow_none:
            return None
        raise InvalidRequest(f"{field} is required", {"field": field})

    if isinstance(value, bool):
        raise InvalidRequest(f"{field} must be an integer", {"field": field})

    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped or "e" in stripped.lower() or "." in stripped:
            raise InvalidRequest(f"{field} must be an integer", {"field": field})
        try:
            parsed = int(stripped)
        except ValueError:
            raise InvalidRequest(f"{field} must be an integer", {"field": field})
    else:
        raise InvalidRequest(f"{field} must be an integer", {"field": field})

    if abs(parsed) > MAX_SQL_INTEGER:
        raise InvalidRequest(f"{field} is out of range", {"field": field})
    if positive and parsed <= 0:
        raise InvalidRequest(f"{field} must be greater than zero", {"field": field})
    return parsed


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return parse_int(value, col.key)

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise InvalidRequest(f"{col.key} must be a boolean", {"field": col.key})

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise InvalidRequest("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise InvalidRequest(f"Missing required fields: {', '.join(missing)}", {"fields": missing})

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in policy.writable_fields or k not in cols:
            raise InvalidRequest(f"Field not allowed: {k}", {"field": k})

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise InvalidRequest(f"{k} cannot be null", {"field": k})
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise InvalidRequest(f"{k} cannot be blank", {"field": k})

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise InvalidRequest(f"{k} exceeds max length {col.type.length}", {"field": k})

        patch[k] = val

    return patch


def enforce_rules_store_settings(patch: dict) -> None:
    if "tax_rate_bps" in patch and patch["tax_rate_bps"] is not None:
        if not 0 <= patch["tax_rate_bps"] <= 10_000:
            raise InvalidRequest("tax_rate_bps must be between 0 and 10000", {"field": "tax_rate_bps"})

    if "currency" in patch and patch["currency"] is not None:
        currency = patch["currency"].upper()
        if len(currency) != 3 or not currency.isalpha():
            raise InvalidRequest("currency must be a 3-letter ISO code", {"field": "currency"})
        patch["currency"] = currency
