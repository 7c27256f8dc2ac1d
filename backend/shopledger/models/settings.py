from __future__ import annotations

from ..extensions import db
from shopledger.time_utils import to_utc_z


class StoreSettings(db.Model):
    """
    Single-row store profile (name, contact, tax id, currency, tax rate).

    Read through settings_service.load_store_settings(), which returns an
    immutable record that callers pass along explicitly.
    """
    __tablename__ = "store_settings"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)

    store_name = db.Column(db.String(255), nullable=False, default="My Store")
    store_address = db.Column(db.Text, nullable=True)
    store_phone = db.Column(db.String(32), nullable=True)
    tax_id = db.Column(db.String(32), nullable=True)
    currency = db.Column(db.String(3), nullable=False, default="AZN")

    # Basis points: 1800 = 18.00%
    tax_rate_bps = db.Column(db.Integer, nullable=False, default=0)

    updated_at = db.Column(db.DateTime, nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_name": self.store_name,
            "store_address": self.store_address,
            "store_phone": self.store_phone,
            "tax_id": self.tax_id,
            "currency": self.currency,
            "tax_rate_bps": self.tax_rate_bps,
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
