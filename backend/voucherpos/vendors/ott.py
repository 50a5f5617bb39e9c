# Overview: OTT reseller API client (voucher issuing and reseller balance).

"""
OTT reseller API

Every call is a form-encoded POST with HTTP Basic credentials plus a
``hash`` parameter: sha256(api_key + parameter values ordered by key name).
Success is signalled in the body (``"success": "true"``), not by status.
"""

from __future__ import annotations

import hashlib
import json
import logging
import uuid
from decimal import Decimal

import httpx

from ..errors import ValidationError, VendorError
from .base import VendorHttpClient, VendorResult, basic_auth_header, vendor_message, GENERIC_VENDOR_MESSAGE

logger = logging.getLogger(__name__)


def sign_params(api_key: str, params: dict) -> str:
    """sha256 hex digest of the api key followed by the values sorted by key."""
    joined = api_key + "".join(str(params[key]) for key in sorted(params))
    return hashlib.sha256(joined.encode("utf-8")).hexdigest()


def cents_to_value(amount_cents: int) -> str:
    """OTT takes rand values: 1000 -> "10", 1050 -> "10.50"."""
    if amount_cents % 100 == 0:
        return str(amount_cents // 100)
    return str((Decimal(amount_cents) / 100).quantize(Decimal("0.01")))


def _is_success(payload: dict) -> bool:
    flag = payload.get("success")
    return flag is True or str(flag).lower() == "true"


def _decode_voucher(raw_voucher) -> dict:
    # The voucher arrives as a JSON document embedded in a string field
    if isinstance(raw_voucher, dict):
        return raw_voucher
    if isinstance(raw_voucher, str) and raw_voucher.strip():
        try:
            decoded = json.loads(raw_voucher)
        except ValueError:
            return {}
        return decoded if isinstance(decoded, dict) else {}
    return {}


class OttClient(VendorHttpClient):
    vendor_name = "OTT"

    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        api_key: str,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        if not (username and password and api_key):
            raise VendorError("OTT credentials are not configured")
        super().__init__(base_url, timeout=timeout, transport=transport)
        self.api_key = api_key
        self.auth_header = basic_auth_header(username, password)

    @classmethod
    def from_config(cls, config, transport: httpx.BaseTransport | None = None) -> "OttClient":
        return cls(
            base_url=config.get("OTT_API_BASE_URL"),
            username=config.get("OTT_API_USERNAME"),
            password=config.get("OTT_API_PASSWORD"),
            api_key=config.get("OTT_API_KEY"),
            timeout=config.get("VENDOR_TIMEOUT_SECONDS", 30.0),
            transport=transport,
        )

    def _post(self, path: str, params: dict) -> dict:
        form = {key: str(params[key]) for key in sorted(params)}
        form["hash"] = sign_params(self.api_key, form)
        return self.request(
            "POST",
            path,
            data=form,
            headers={"Authorization": self.auth_header, "Accept": "application/json"},
        )

    def get_voucher(
        self,
        amount_cents: int,
        *,
        vendor_code: str = "11",
        branch: str = "DEFAULT_BRANCH",
        cashier: str = "SYSTEM",
        till: str = "WEB",
        mobile_for_sms: str = "",
        unique_reference: str | None = None,
    ) -> VendorResult:
        """Issue one OTT voucher for the given value."""
        if not isinstance(amount_cents, int) or amount_cents <= 0:
            raise ValidationError("amount_cents must be a positive integer")
        unique_reference = unique_reference or f"ref-{uuid.uuid4().hex[:16]}"

        payload = self._post("/reseller/v1/GetVoucher", {
            "branch": branch,
            "cashier": cashier,
            "mobileForSMS": mobile_for_sms or "",
            "till": till,
            "uniqueReference": unique_reference,
            "value": cents_to_value(amount_cents),
            "vendorCode": vendor_code,
        })
        if not _is_success(payload):
            raise VendorError(vendor_message(payload) or "Failed to issue OTT voucher", payload=payload)

        voucher = _decode_voucher(payload.get("voucher"))
        code = voucher.get("pin") or voucher.get("voucherCode") or voucher.get("voucherPin")
        logger.info("OTT voucher issued for reference %s", unique_reference)
        return VendorResult(
            success=True,
            amount_cents=amount_cents,
            voucher_code=str(code) if code is not None else None,
            reference=voucher.get("uniqueReference") or unique_reference,
            raw=payload,
        )

    def get_balance(self, unique_reference: str | None = None) -> VendorResult:
        """Reseller float balance held at OTT."""
        unique_reference = unique_reference or f"bal-{uuid.uuid4().hex[:16]}"
        payload = self._post("/reseller/v1/GetBalance", {"uniqueReference": unique_reference})
        if "success" in payload and not _is_success(payload):
            raise VendorError(vendor_message(payload) or GENERIC_VENDOR_MESSAGE, payload=payload)

        balance = payload.get("balance")
        amount_cents = None
        if balance is not None:
            try:
                amount_cents = int((Decimal(str(balance)) * 100).to_integral_value())
            except ArithmeticError:
                amount_cents = None
        return VendorResult(
            success=True,
            amount_cents=amount_cents,
            voucher_code=None,
            reference=unique_reference,
            raw=payload,
        )
