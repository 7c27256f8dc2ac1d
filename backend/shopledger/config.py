# backend/shopledger/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/shopledger.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///shopledger.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Seconds a writer waits on a locked SQLite database before giving up
    SQLITE_BUSY_TIMEOUT = float(os.environ.get("SQLITE_BUSY_TIMEOUT", "10"))

    # Ledger policies: "strict" rejects negative stock / overpayment,
    # "permissive" lets stock and remaining balances go negative.
    STOCK_POLICY = os.environ.get("STOCK_POLICY", "strict")
    OVERPAYMENT_POLICY = os.environ.get("OVERPAYMENT_POLICY", "strict")
    ALLOW_PRICE_OVERRIDE = _env_bool("ALLOW_PRICE_OVERRIDE", False)

    # Local day boundary for "today" dashboard figures
    STORE_TIMEZONE = os.environ.get("STORE_TIMEZONE", "UTC")

    TRANSACTION_RETRY_ATTEMPTS = int(os.environ.get("TRANSACTION_RETRY_ATTEMPTS", "3"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
