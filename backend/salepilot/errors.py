# Overview: Error taxonomy shared by every service in the commerce core.

"""
Commerce Core Errors

WHY: Callers (API adapters, CLI commands, tests) need a stable classification
for every failure, independent of which service raised it. Each error carries
a machine-readable code, an HTTP-ish status hint and optional details.

PROPAGATION:
- Any CommerceError aborts the current operation.
- The enclosing transaction helper rolls back every mutation made so far.
- Nothing is retried here except optimistic-lock/lock-timeout failures
  (see services.concurrency).
"""

from __future__ import annotations


class CommerceError(Exception):
    """Base class for classified business errors."""
    code = "ERROR"
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"error": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(CommerceError):
    """400-level input problem (missing items, malformed request)."""
    code = "VALIDATION"
    status_code = 400


class InvalidAmountError(ValidationError):
    """Non-positive or otherwise unusable money/quantity amount."""
    code = "INVALID_AMOUNT"


class NotFoundError(CommerceError):
    code = "NOT_FOUND"
    status_code = 404


class CrossTenantError(CommerceError):
    """A referenced row exists but belongs to another tenant."""
    code = "CROSS_TENANT"
    status_code = 403


class PermissionDeniedError(CommerceError):
    code = "FORBIDDEN"
    status_code = 403


class ConflictError(CommerceError):
    """409-level business rule conflict (duplicate key, illegal transition)."""
    code = "CONFLICT"
    status_code = 409


class InsufficientCreditError(CommerceError):
    code = "INSUFFICIENT_CREDIT"
    status_code = 422


class InsufficientStockError(CommerceError):
    code = "INSUFFICIENT_STOCK"
    status_code = 422


class UnbalancedEntryError(CommerceError):
    """Journal entry debits and credits differ."""
    code = "UNBALANCED"
    status_code = 422


class TenantStateError(CommerceError):
    """
    Tenant context missing or inconsistent.

    This is a programming error in the caller (no scope bound, or an attempt
    to move a row between tenants), never a user input problem.
    """
    code = "TENANT_STATE"
    status_code = 500
