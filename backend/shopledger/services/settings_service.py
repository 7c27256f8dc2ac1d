from __future__ import annotations

from dataclasses import asdict, dataclass

from flask import current_app

from ..extensions import db
from ..models import StoreSettings
from ..validation import ModelValidationPolicy, enforce_rules_store_settings, validate_payload
from .concurrency import run_in_transaction


STORE_SETTINGS_POLICY = ModelValidationPolicy(
    writable_fields={
        "store_name",
        "store_address",
        "store_phone",
        "tax_id",
        "currency",
        "tax_rate_bps",
    },
    required_on_create=set(),
)


@dataclass(frozen=True)
class StoreSettingsRecord:
    """
    Immutable snapshot of the store profile.

    Loaded once per request and handed to whatever needs it (dashboard day
    window, receipts). Nothing caches it between requests.
    """
    store_name: str
    store_address: str | None
    store_phone: str | None
    tax_id: str | None
    currency: str
    tax_rate_bps: int
    timezone: str

    def to_dict(self) -> dict:
        return asdict(self)


def _defaults() -> StoreSettings:
    return StoreSettings(store_name="My Store", currency="AZN", tax_rate_bps=0)


def _get_row() -> StoreSettings | None:
    return db.session.query(StoreSettings).order_by(StoreSettings.id.asc()).first()


def load_store_settings() -> StoreSettingsRecord:
    """Build the settings record from the stored row (or defaults) and config."""
    row = _get_row() or _defaults()
    return StoreSettingsRecord(
        store_name=row.store_name,
        store_address=row.store_address,
        store_phone=row.store_phone,
        tax_id=row.tax_id,
        currency=row.currency,
        tax_rate_bps=row.tax_rate_bps,
        timezone=current_app.config.get("STORE_TIMEZONE") or "UTC",
    )


def update_store_settings(payload: dict) -> StoreSettingsRecord:
    """Validate and apply a partial update; creates the row on first write."""
    patch = validate_payload(model=StoreSettings, payload=payload, policy=STORE_SETTINGS_POLICY, partial=True)
    enforce_rules_store_settings(patch)

    def _op():
        row = _get_row()
        if row is None:
            row = _defaults()
            db.session.add(row)
        for key, value in patch.items():
            setattr(row, key, value)
        db.session.flush()

    run_in_transaction(_op, label="Store settings update")
    current_app.logger.info("Store settings updated: fields=%s", sorted(patch))
    return load_store_settings()
