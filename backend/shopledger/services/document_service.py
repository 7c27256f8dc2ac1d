# Overview: Human-readable document numbers for sales and purchases.

from __future__ import annotations

import secrets
from datetime import datetime

from sqlalchemy.exc import IntegrityError

from shopledger.time_utils import utcnow

SALE_PREFIX = "SAL"
PURCHASE_PREFIX = "PUR"


def generate_document_number(prefix: str, now: datetime | None = None) -> str:
    """
    Build a candidate number like "SAL-20261019-142501-9F3A1C".

    The timestamp keeps numbers sortable and readable; the random suffix makes
    same-second collisions unlikely. Uniqueness itself is enforced by the
    UNIQUE constraint on the document table, and callers retry the whole
    transaction with a fresh candidate on IntegrityError (see
    DOCUMENT_NUMBER_CONFLICTS).
    """
    stamp = (now or utcnow()).strftime("%Y%m%d-%H%M%S")
    return f"{prefix}-{stamp}-{secrets.token_hex(3).upper()}"


# Exception types that trigger a fresh-number retry of the whole unit of work
DOCUMENT_NUMBER_CONFLICTS = (IntegrityError,)
