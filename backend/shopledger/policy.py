"""
Ledger guard policies.

Oversold stock and overpaid sales are each guarded by a policy. "strict"
rejects the write with ConsistencyViolation; "permissive" lets stock and
remaining balances go negative. The guard is part of the UPDATE statement
itself, so the outcome is decided inside the same transaction as the rest
of the operation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from flask import current_app

POLICY_STRICT = "strict"
POLICY_PERMISSIVE = "permissive"
VALID_POLICIES = (POLICY_STRICT, POLICY_PERMISSIVE)


def _parse_policy(name: str, value) -> bool:
    normalized = str(value or POLICY_STRICT).strip().lower()
    if normalized not in VALID_POLICIES:
        raise ValueError(f"{name} must be one of {VALID_POLICIES}, got {value!r}")
    return normalized == POLICY_STRICT


@dataclass(frozen=True)
class LedgerPolicy:
    strict_stock: bool = True
    strict_overpayment: bool = True
    allow_price_override: bool = False

    @classmethod
    def from_config(cls, config: Mapping) -> "LedgerPolicy":
        return cls(
            strict_stock=_parse_policy("STOCK_POLICY", config.get("STOCK_POLICY")),
            strict_overpayment=_parse_policy("OVERPAYMENT_POLICY", config.get("OVERPAYMENT_POLICY")),
            allow_price_override=bool(config.get("ALLOW_PRICE_OVERRIDE", False)),
        )

    def to_dict(self) -> dict:
        return {
            "stock_policy": POLICY_STRICT if self.strict_stock else POLICY_PERMISSIVE,
            "overpayment_policy": POLICY_STRICT if self.strict_overpayment else POLICY_PERMISSIVE,
            "allow_price_override": self.allow_price_override,
        }


def current_policy() -> LedgerPolicy:
    return LedgerPolicy.from_config(current_app.config)
