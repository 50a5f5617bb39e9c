# Overview: Glocell bill-payment API client (prepaid electricity and DStv).

"""
Glocell

JSON API authenticated with an ``apikey`` header plus HTTP Basic
credentials. Electricity is two steps: confirm the meter (returns a
``reference``), then vend against that reference. DStv payments go through
the bill-payment sales endpoint.
"""

from __future__ import annotations

import logging
import uuid

import httpx

from ..errors import ValidationError, VendorError
from ..time_utils import utcnow, to_utc_z
from .base import VendorHttpClient, VendorResult, basic_auth_header

logger = logging.getLogger(__name__)


def _first_token(payload: dict) -> str | None:
    tokens = payload.get("tokens") or payload.get("token")
    if isinstance(tokens, list) and tokens:
        first = tokens[0]
        if isinstance(first, dict):
            return first.get("token") or first.get("value") or first.get("number")
        return str(first)
    if isinstance(tokens, str):
        return tokens
    return None


def _int_or_none(value) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class GlocellClient(VendorHttpClient):
    vendor_name = "Glocell"

    def __init__(
        self,
        base_url: str,
        api_key: str,
        username: str,
        password: str,
        vendor_id: str = "000000",
        device_id: str = "000000",
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        if not (api_key and username and password):
            raise VendorError("Glocell credentials are not configured")
        super().__init__(base_url, timeout=timeout, transport=transport)
        self.vendor_id = vendor_id
        self.device_id = device_id
        self.headers = {
            "accept": "application/json",
            "apikey": api_key,
            "authorization": basic_auth_header(username, password),
        }

    @classmethod
    def from_config(cls, config, transport: httpx.BaseTransport | None = None) -> "GlocellClient":
        return cls(
            base_url=config.get("GLOCELL_API_BASE_URL"),
            api_key=config.get("GLOCELL_API_KEY"),
            username=config.get("GLOCELL_API_USERNAME"),
            password=config.get("GLOCELL_API_PASSWORD"),
            vendor_id=config.get("GLOCELL_VENDOR_ID", "000000"),
            device_id=config.get("GLOCELL_DEVICE_ID", "000000"),
            timeout=config.get("VENDOR_TIMEOUT_SECONDS", 30.0),
            transport=transport,
        )

    def _vend_metadata(self, request_id: str, account_number: str) -> dict:
        return {
            "transactionRequestDateTime": to_utc_z(utcnow()),
            "transactionReference": request_id,
            "vendorId": self.vendor_id,
            "deviceId": self.device_id,
            "consumerAccountNumber": account_number,
        }

    def confirm_customer(self, meter_number: str, amount_cents: int) -> VendorResult:
        """
        Look up a prepaid meter. The returned reference must be passed to
        vend_electricity; raw carries the consumer name and address.
        """
        meter_number = (meter_number or "").strip()
        if not meter_number:
            raise ValidationError("meter_number is required")
        if not isinstance(amount_cents, int) or amount_cents <= 0:
            raise ValidationError("amount_cents must be a positive integer")

        payload = self.request(
            "GET",
            "/electricity/info",
            params={
                "meter-number": meter_number,
                "amount": str(amount_cents),
                "free-basic-electricity": "false",
            },
            headers=self.headers,
        )
        reference = payload.get("reference")
        if not reference:
            raise VendorError("Meter confirmation returned no reference", payload=payload)
        return VendorResult(
            success=True,
            amount_cents=amount_cents,
            voucher_code=None,
            reference=str(reference),
            raw=payload,
        )

    def vend_electricity(self, reference: str, meter_number: str) -> VendorResult:
        """Buy electricity against a confirmed reference. voucher_code is the first token."""
        if not reference or not meter_number:
            raise ValidationError("reference and meter_number are required")

        request_id = str(uuid.uuid4())
        payload = self.request(
            "POST",
            "/electricity/sales",
            json={
                "requestId": request_id,
                "reference": reference,
                "vendMetaData": self._vend_metadata(request_id, meter_number),
            },
            headers=self.headers,
        )
        logger.info("Glocell electricity vend %s completed", request_id)
        return VendorResult(
            success=True,
            amount_cents=_int_or_none(payload.get("amount")),
            voucher_code=_first_token(payload),
            reference=payload.get("reference") or reference,
            raw=payload,
        )

    def pay_dstv(
        self,
        reference: str,
        account_number: str,
        product_id,
        amount_cents: int,
        vendor_id=None,
    ) -> VendorResult:
        """Pay a DStv account. ``reference`` comes from the account validation step."""
        if not reference or not account_number:
            raise ValidationError("reference and account_number are required")
        for name, value in (("account_number", account_number), ("product_id", product_id)):
            if _int_or_none(value) is None:
                raise ValidationError(f"{name} must be numeric")
        if not isinstance(amount_cents, int) or amount_cents <= 0:
            raise ValidationError("amount_cents must be a positive integer")

        request_id = str(uuid.uuid4())
        metadata = self._vend_metadata(request_id, str(account_number))
        metadata.update({"clientId": self.vendor_id, "emailAddress": "", "cellphoneNumber": ""})

        payload = self.request(
            "POST",
            "/billpayment/sales",
            json={
                "requestId": request_id,
                "vendorId": _int_or_none(vendor_id if vendor_id is not None else self.vendor_id),
                "productId": int(product_id),
                "accountNumber": int(account_number),
                "aeonTransactionId": reference,
                "amount": amount_cents,
                "tenderType": "CASH",
                "vendMetaData": metadata,
            },
            headers={**self.headers, "Trade-Vend-Channel": "API"},
        )
        logger.info("Glocell DStv payment %s completed", request_id)
        return VendorResult(
            success=True,
            amount_cents=_int_or_none(payload.get("amount")) or amount_cents,
            voucher_code=None,
            reference=payload.get("vendorReference") or payload.get("reference") or reference,
            raw=payload,
        )
