# Overview: Ledger error taxonomy shared by services, routes and the CLI.

"""
Every ledger operation fails with one of four errors:

- InvalidRequest: malformed or out-of-range input, raised before any write
- NotFound: a referenced sale/customer/product does not exist
- ConsistencyViolation: the write would break a stock or balance guard
- StorageFailure: the transaction could not commit; nothing was applied

Routes map `http_status` straight into the JSON response.
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for ledger operation failures."""

    http_status = 500
    code = "LEDGER_ERROR"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code, "details": self.details}


class InvalidRequest(LedgerError):
    http_status = 400
    code = "INVALID_REQUEST"


class NotFound(LedgerError):
    http_status = 404
    code = "NOT_FOUND"


class ConsistencyViolation(LedgerError):
    http_status = 409
    code = "CONSISTENCY_VIOLATION"


class StorageFailure(LedgerError):
    http_status = 503
    code = "STORAGE_FAILURE"
