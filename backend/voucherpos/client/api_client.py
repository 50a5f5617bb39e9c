# Overview: httpx client for the terminal API; maps error bodies back to typed errors.

"""
Terminal API client

Read calls (profile, categories, inventory, commission, funds, history)
raise ApiError on transport failure, or the typed error named by the
response's ``kind``.

The sale call is different: once the request may have left the machine, a
timeout, transport failure or 5xx means the outcome is unknown. Those raise
SaleError(Indeterminate) and the caller must check sale history before
selling again. Nothing here retries.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime
from decimal import Decimal
from typing import Dict, Optional

import httpx

from ..errors import ApiError, SaleError, KIND_INDETERMINATE, error_from_payload
from ..services.commission_service import CommissionQuote
from ..services.funds_service import FundsCheck
from ..services.inventory_service import DenominationStock
from ..services.receipts import SaleReceipt
from ..time_utils import to_utc_z
from .session import TerminalSession

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = float(os.environ.get("TERMINAL_REQUEST_TIMEOUT", "15"))


def _decode(response: httpx.Response) -> dict:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


class TerminalApiClient:
    """
    HTTP client wrapper with bearer-token authentication.

    ``transport`` is passed straight to httpx; tests use httpx.WSGITransport
    against the Flask app or httpx.MockTransport for failure cases.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = (base_url or os.environ.get("TERMINAL_API_URL", "http://127.0.0.1:5000")).rstrip("/")
        self.client = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)
        self.token: Optional[str] = None

    def _headers(self) -> Dict:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _read(self, method: str, path: str, **kwargs) -> dict:
        try:
            response = self.client.request(method, path, headers=self._headers(), **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("Terminal API %s %s failed: %s", method, path, exc)
            raise ApiError(f"Could not reach the server: {exc.__class__.__name__}") from exc

        payload = _decode(response)
        if response.is_error:
            raise error_from_payload(payload, response.status_code)
        return payload

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    def login(self, username: str, password: str) -> dict:
        payload = self._read("POST", "/api/auth/login", json={"username": username, "password": password})
        self.token = payload.get("token")
        return payload

    def logout(self) -> None:
        if not self.token:
            return
        try:
            self._read("POST", "/api/auth/logout")
        finally:
            self.token = None

    def profile(self, terminal_id: Optional[int] = None) -> dict:
        params = {"terminal_id": terminal_id} if terminal_id else None
        return self._read("GET", "/api/terminal/profile", params=params)

    def open_session(self, username: str, password: str, terminal_id: Optional[int] = None) -> TerminalSession:
        """Log in and build the session object the lifecycle runs against."""
        self.login(username, password)
        return TerminalSession.from_profile(self.token, self.profile(terminal_id))

    # ------------------------------------------------------------------
    # Lookups (no side effects)
    # ------------------------------------------------------------------

    def categories(self) -> list[str]:
        return self._read("GET", "/api/terminal/categories").get("categories", [])

    def inventory(
        self,
        category: str,
        network_provider: Optional[str] = None,
        sub_category: Optional[str] = None,
    ) -> list[DenominationStock]:
        params = {"category": category}
        if network_provider:
            params["network_provider"] = network_provider
        if sub_category:
            params["sub_category"] = sub_category
        payload = self._read("GET", "/api/terminal/inventory", params=params)
        return [DenominationStock(**item) for item in payload.get("items", [])]

    def commission(self, terminal_id: int, voucher_type_id: int, amount_cents: int) -> CommissionQuote:
        payload = self._read("GET", "/api/terminal/commission", params={
            "terminal_id": terminal_id,
            "voucher_type_id": voucher_type_id,
            "amount_cents": amount_cents,
        })
        quote = payload["quote"]
        return CommissionQuote(
            rate_pct=Decimal(quote["rate_pct"]),
            commission_cents=quote["commission_cents"],
            agent_rate_pct=Decimal(quote["agent_rate_pct"]),
            agent_commission_cents=quote["agent_commission_cents"],
            group_name=quote.get("group_name") or "",
        )

    def funds(self, terminal_id: int, amount_cents: int) -> tuple[FundsCheck, dict]:
        """Server-side funds check plus the fresh retailer snapshot it was based on."""
        payload = self._read("GET", "/api/terminal/funds", params={
            "terminal_id": terminal_id,
            "amount_cents": amount_cents,
        })
        return FundsCheck(**payload["funds"]), payload.get("retailer") or {}

    def sales(
        self,
        terminal_id: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 50,
    ) -> list[dict]:
        params = {"terminal_id": terminal_id, "limit": limit}
        if start:
            params["start"] = to_utc_z(start)
        if end:
            params["end"] = to_utc_z(end)
        return self._read("GET", "/api/terminal/sales", params=params).get("sales", [])

    def receipt(self, terminal_id: int, sale_id: int) -> SaleReceipt:
        payload = self._read("GET", f"/api/terminal/sales/{sale_id}/receipt", params={"terminal_id": terminal_id})
        return SaleReceipt.from_dict(payload.get("receipt") or {})

    # ------------------------------------------------------------------
    # Sale (the only mutating call)
    # ------------------------------------------------------------------

    def sell(
        self,
        terminal_id: int,
        voucher_type_id: int,
        amount_cents: int,
        inventory_unit_id: Optional[int] = None,
    ) -> SaleReceipt:
        body = {
            "terminal_id": terminal_id,
            "voucher_type_id": voucher_type_id,
            "amount_cents": amount_cents,
        }
        if inventory_unit_id is not None:
            body["inventory_unit_id"] = inventory_unit_id

        try:
            response = self.client.post("/api/terminal/sales", headers=self._headers(), json=body)
        except httpx.HTTPError as exc:
            logger.warning("Sale request outcome unknown: %s", exc)
            raise SaleError(
                "The sale outcome is unknown. Check sale history before selling again.",
                kind=KIND_INDETERMINATE,
                details={"reason": exc.__class__.__name__},
            ) from exc

        payload = _decode(response)
        if response.status_code >= 500:
            raise SaleError(
                "The sale outcome is unknown. Check sale history before selling again.",
                kind=KIND_INDETERMINATE,
                details={"status_code": response.status_code},
            )
        if response.is_error:
            raise error_from_payload(payload, response.status_code)

        receipt = payload.get("receipt")
        if not isinstance(receipt, dict) or receipt.get("sale_id") is None:
            # 2xx without a readable receipt (proxy page, truncated body); the sale may have committed
            logger.warning("Sale response %s carried no receipt", response.status_code)
            raise SaleError(
                "The sale outcome is unknown. Check sale history before selling again.",
                kind=KIND_INDETERMINATE,
                details={"status_code": response.status_code, "reason": "missing receipt"},
            )
        return SaleReceipt.from_dict(receipt)

    def close(self) -> None:
        self.client.close()
