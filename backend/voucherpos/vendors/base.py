# Overview: Shared httpx plumbing for vendor clients: auth, error translation, JSON decoding.

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from ..errors import VendorError

logger = logging.getLogger(__name__)

GENERIC_VENDOR_MESSAGE = "Vendor request failed"


@dataclass(frozen=True)
class VendorResult:
    """
    One result shape for every vendor: success flag, amount in cents, voucher
    code or token (if any), the vendor reference, and the raw decoded body.
    """
    success: bool
    amount_cents: Optional[int]
    voucher_code: Optional[str]
    reference: Optional[str]
    raw: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "amount_cents": self.amount_cents,
            "voucher_code": self.voucher_code,
            "reference": self.reference,
            "raw": self.raw,
        }


def basic_auth_header(username: str, password: str) -> str:
    token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


def decode_json(response: httpx.Response) -> dict:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {"data": data}


def vendor_message(payload: dict) -> str | None:
    """The vendor's own message, if it sent a usable one."""
    for key in ("message", "Message", "error", "errorMessage"):
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


class VendorHttpClient:
    """
    Thin httpx wrapper. ``transport`` is injectable so tests can use
    httpx.MockTransport instead of the network.
    """

    vendor_name = "vendor"

    def __init__(self, base_url: str, timeout: float = 30.0, transport: httpx.BaseTransport | None = None):
        if not base_url:
            raise VendorError(f"{self.vendor_name} base URL is not configured")
        self.base_url = base_url.rstrip("/")
        self.client = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    def request(self, method: str, path: str, **kwargs) -> dict:
        """Send a request; non-2xx and transport failures become VendorError."""
        try:
            response = self.client.request(method, path, **kwargs)
        except httpx.TimeoutException as exc:
            logger.warning("%s %s %s timed out", self.vendor_name, method, path)
            raise VendorError(f"{self.vendor_name} request timed out; check the vendor before retrying") from exc
        except httpx.HTTPError as exc:
            logger.warning("%s %s %s failed: %s", self.vendor_name, method, path, exc)
            raise VendorError(GENERIC_VENDOR_MESSAGE) from exc

        payload = decode_json(response)
        if response.is_error:
            logger.warning("%s %s %s returned %s", self.vendor_name, method, path, response.status_code)
            raise VendorError(
                vendor_message(payload) or GENERIC_VENDOR_MESSAGE,
                status_code=response.status_code,
                payload=payload,
            )
        return payload

    def close(self) -> None:
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()
