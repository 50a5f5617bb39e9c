# Overview: Error taxonomy shared by services, routes, and the terminal client.

"""
Every error carries a ``kind`` string that survives the trip through the JSON
API, so the terminal client can rebuild the same typed error on its side.

KINDS:
- InventoryUnitUnavailable: unit sold between selection and confirmation
- RateNotConfigured: no commission rate for the retailer's group + voucher type
- InsufficientFunds: balance + available credit does not cover the sale
- Indeterminate: outcome unknown (timeout / transport failure on submit)
- VendorError: third-party voucher or bill-payment API failure
"""

from __future__ import annotations


KIND_VALIDATION = "ValidationError"
KIND_NOT_FOUND = "NotFound"
KIND_INVENTORY_UNIT_UNAVAILABLE = "InventoryUnitUnavailable"
KIND_RATE_NOT_CONFIGURED = "RateNotConfigured"
KIND_INSUFFICIENT_FUNDS = "InsufficientFunds"
KIND_INDETERMINATE = "Indeterminate"
KIND_VENDOR_ERROR = "VendorError"


class VoucherPosError(Exception):
    """Base error with a machine-readable kind and optional details."""

    kind = "Error"

    def __init__(self, message: str, kind: str | None = None, details: dict | None = None):
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "kind": self.kind, "details": self.details}


class ValidationError(VoucherPosError, ValueError):
    """400-level input problem."""

    kind = KIND_VALIDATION


class NotFoundError(VoucherPosError, LookupError):
    kind = KIND_NOT_FOUND


class SaleError(VoucherPosError):
    """Raised when a sale cannot be completed. ``kind`` says why."""

    @property
    def retryable(self) -> bool:
        # Only a fresh, user-confirmed attempt; never an automatic resubmission.
        return self.kind in (KIND_INVENTORY_UNIT_UNAVAILABLE, KIND_INDETERMINATE)


class CommissionError(VoucherPosError):
    kind = KIND_RATE_NOT_CONFIGURED


class VendorError(VoucherPosError):
    """Third-party API failure. ``status_code`` is the vendor's HTTP status if any."""

    kind = KIND_VENDOR_ERROR

    def __init__(self, message: str, status_code: int | None = None, payload: dict | None = None):
        super().__init__(message, details={"status_code": status_code} if status_code else None)
        self.status_code = status_code
        self.payload = payload or {}


class ApiError(VoucherPosError):
    """Client-side: a read request failed (HTTP error or transport failure)."""

    def __init__(self, message: str, status_code: int | None = None, kind: str | None = None, details: dict | None = None):
        super().__init__(message, kind=kind, details=details)
        self.status_code = status_code


# HTTP status per kind, used by the route layer.
STATUS_BY_KIND = {
    KIND_VALIDATION: 400,
    KIND_NOT_FOUND: 404,
    KIND_INVENTORY_UNIT_UNAVAILABLE: 409,
    KIND_INSUFFICIENT_FUNDS: 409,
    KIND_RATE_NOT_CONFIGURED: 422,
    KIND_VENDOR_ERROR: 502,
    KIND_INDETERMINATE: 504,
}


def error_from_payload(payload: dict, status_code: int | None = None) -> VoucherPosError:
    """Rebuild a typed error from an API error body."""
    message = payload.get("error") or "Request failed"
    kind = payload.get("kind")
    details = payload.get("details") or {}
    if kind in (KIND_INVENTORY_UNIT_UNAVAILABLE, KIND_INSUFFICIENT_FUNDS, KIND_INDETERMINATE):
        return SaleError(message, kind=kind, details=details)
    if kind == KIND_RATE_NOT_CONFIGURED:
        return CommissionError(message, details=details)
    if kind == KIND_VALIDATION:
        return ValidationError(message, details=details)
    if kind == KIND_NOT_FOUND:
        return NotFoundError(message, details=details)
    if kind == KIND_VENDOR_ERROR:
        return VendorError(message, status_code=details.get("status_code"))
    return ApiError(message, status_code=status_code, kind=kind, details=details)
