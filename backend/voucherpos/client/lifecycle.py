# Overview: Client-side sale state machine; the only guard against double submission of a sale.

"""
Sale Lifecycle

================================================================================
STATE MACHINE:
    Idle -> CategorySelected -> ValueSelected -> ConfirmPending -> Submitting -> {Success, Failed}

    Idle:             nothing selected
    CategorySelected: inventory looked up for a category (read-through cache)
    ValueSelected:    denomination chosen, commission quoted
    ConfirmPending:   fresh funds check done; confirm enabled only if fundable
                      and a commission rate exists
    Submitting:       sale request in flight; no input, no cancel
    Success:          receipt available; terminal until new_sale()
    Failed:           error kind available; retry() goes back to ConfirmPending
================================================================================

RULES:
1. The sale call is made once per confirm(). Nothing resubmits on its own.
2. After an Indeterminate failure, retry() is refused until sale history has
   been checked (check_history() or retry(history_checked=True)).
3. Unfundable or unrated sales stay in ConfirmPending with can_confirm False
   and a message; they are not errors.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Literal, Optional

from ..errors import CommissionError, SaleError, VoucherPosError, KIND_INDETERMINATE
from ..services.commission_service import CommissionQuote
from ..services.funds_service import FundsCheck
from ..services.inventory_service import DenominationStock
from ..services.receipts import SaleReceipt
from .api_client import TerminalApiClient
from .cache import ReadThroughCache
from .session import TerminalSession

logger = logging.getLogger(__name__)


IDLE = "Idle"
CATEGORY_SELECTED = "CategorySelected"
VALUE_SELECTED = "ValueSelected"
CONFIRM_PENDING = "ConfirmPending"
SUBMITTING = "Submitting"
SUCCESS = "Success"
FAILED = "Failed"

SaleState = Literal["Idle", "CategorySelected", "ValueSelected", "ConfirmPending", "Submitting", "Success", "Failed"]


class LifecycleError(ValueError):
    """
    Raised when an action is not allowed in the current state.

    This is a UI rule violation (double confirm, cancel mid-submit), not a
    sale failure; the lifecycle state is left unchanged.
    """
    pass


def _norm(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip().lower()
    return value or None


def _rands(cents: int) -> str:
    return f"R{cents / 100:.2f}"


class SaleLifecycle:
    def __init__(
        self,
        api: TerminalApiClient,
        session: TerminalSession,
        cache: Optional[ReadThroughCache] = None,
    ):
        self.api = api
        self.session = session
        self.cache = cache if cache is not None else ReadThroughCache()
        self.state: SaleState = IDLE
        self._reset_selection()

    def _reset_selection(self) -> None:
        self.category: Optional[str] = None
        self.network_provider: Optional[str] = None
        self.sub_category: Optional[str] = None
        self.stock: list[DenominationStock] = []
        self.selection: Optional[DenominationStock] = None
        self.quote: Optional[CommissionQuote] = None
        self.quote_error: Optional[CommissionError] = None
        self.funds: Optional[FundsCheck] = None
        self.can_confirm = False
        self.message: Optional[str] = None
        self.receipt: Optional[SaleReceipt] = None
        self.error: Optional[VoucherPosError] = None
        self.history_checked = False

    def _require(self, *states: str) -> None:
        if self.state not in states:
            raise LifecycleError(f"Not allowed in state {self.state}")

    def _require_not_submitting(self) -> None:
        if self.state == SUBMITTING:
            raise LifecycleError("A sale is being submitted; wait for the result")

    @property
    def error_kind(self) -> Optional[str]:
        return self.error.kind if self.error else None

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def _load_stock(self) -> list[DenominationStock]:
        key = ("inventory", self.category, self.network_provider, self.sub_category)
        return self.cache.get_or_load(
            key,
            lambda: self.api.inventory(self.category, self.network_provider, self.sub_category),
        )

    def select_category(
        self,
        category: str,
        network_provider: Optional[str] = None,
        sub_category: Optional[str] = None,
    ) -> list[DenominationStock]:
        """Idle -> CategorySelected. Navigation back here is allowed until submit."""
        self._require(IDLE, CATEGORY_SELECTED, VALUE_SELECTED, CONFIRM_PENDING)
        self._reset_selection()
        self.category = _norm(category)
        self.network_provider = _norm(network_provider)
        self.sub_category = _norm(sub_category)

        self.stock = self._load_stock()
        self.state = CATEGORY_SELECTED
        if not self.stock:
            self.message = "No vouchers available"
        return self.stock

    def _find_stock(self, amount_cents: int, voucher_type_id: Optional[int]) -> Optional[DenominationStock]:
        matches = [
            row for row in self.stock
            if row.amount_cents == amount_cents
            and (voucher_type_id is None or row.voucher_type_id == voucher_type_id)
        ]
        if len(matches) > 1:
            raise LifecycleError("Several voucher types have this value; pass voucher_type_id")
        return matches[0] if matches else None

    def _quote(self) -> None:
        self.quote = None
        self.quote_error = None
        selection = self.selection
        try:
            self.quote = self.cache.get_or_load(
                ("commission", self.category, selection.voucher_type_id, selection.amount_cents),
                lambda: self.api.commission(
                    self.session.terminal_id, selection.voucher_type_id, selection.amount_cents
                ),
            )
        except CommissionError as exc:
            # Blocks confirmation; there is no default rate
            self.quote_error = exc

    def select_value(self, amount_cents: int, voucher_type_id: Optional[int] = None) -> Optional[CommissionQuote]:
        """CategorySelected -> ValueSelected. Fetches the commission quote."""
        self._require(CATEGORY_SELECTED, VALUE_SELECTED, CONFIRM_PENDING)
        selection = self._find_stock(amount_cents, voucher_type_id)
        if selection is None:
            raise LifecycleError(f"No stock for {_rands(amount_cents)}")

        self.selection = selection
        self.funds = None
        self.can_confirm = False
        self.message = None
        self._quote()
        self.state = VALUE_SELECTED
        return self.quote

    def review(self) -> FundsCheck:
        """
        ValueSelected -> ConfirmPending.

        Refreshes the retailer snapshot and runs the funds check. The dialog
        is always reachable; can_confirm says whether confirm() will go.
        """
        self._require(VALUE_SELECTED, CONFIRM_PENDING)
        profile = self.api.profile(self.session.terminal_id)
        self.session.update_balances(profile.get("retailer") or {})

        self.funds = self.session.funds_for(self.selection.amount_cents)
        if self.quote_error is not None:
            self.can_confirm = False
            self.message = "Commission rate not configured for this voucher; sale is blocked"
        elif not self.funds.fundable:
            self.can_confirm = False
            self.message = (
                f"Insufficient funds: {_rands(self.funds.total_available_cents)} available, "
                f"{_rands(self.funds.shortfall_cents)} short"
            )
        else:
            self.can_confirm = True
            self.message = None
        self.state = CONFIRM_PENDING
        return self.funds

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def confirm(self) -> Optional[SaleReceipt]:
        """
        ConfirmPending -> Submitting -> Success | Failed.

        Returns the receipt on success, None on failure (see error/error_kind).
        """
        self._require_not_submitting()
        self._require(CONFIRM_PENDING)
        if not self.can_confirm:
            raise LifecycleError(self.message or "Sale cannot be confirmed")

        selection = self.selection
        self.state = SUBMITTING
        try:
            receipt = self.api.sell(
                self.session.terminal_id,
                selection.voucher_type_id,
                selection.amount_cents,
                inventory_unit_id=selection.next_unit_id,
            )
        except VoucherPosError as exc:
            self._fail(exc)
            return None
        except Exception as exc:
            # Request already sent; the outcome cannot be assumed either way
            logger.exception("Unexpected failure while submitting sale")
            self._fail(SaleError(
                "The sale outcome is unknown. Check sale history before selling again.",
                kind=KIND_INDETERMINATE,
                details={"reason": exc.__class__.__name__},
            ))
            return None

        self.state = SUCCESS
        self.receipt = receipt
        self.error = None
        self.message = None
        self.session.apply_receipt(receipt)
        self.cache.invalidate_category(self.category)
        return receipt

    def _fail(self, exc: VoucherPosError) -> None:
        self.state = FAILED
        self.error = exc
        self.receipt = None
        self.can_confirm = False
        self.history_checked = False
        self.message = exc.message

    def cancel(self) -> None:
        """Back to Idle from anywhere except Submitting."""
        self._require_not_submitting()
        self._reset_selection()
        self.state = IDLE

    def new_sale(self) -> None:
        self._require_not_submitting()
        self._reset_selection()
        self.state = IDLE

    # ------------------------------------------------------------------
    # Recovery
    # ------------------------------------------------------------------

    def check_history(self, since: Optional[datetime] = None, limit: int = 20) -> list[dict]:
        """Recent sales on this terminal, to see whether an Indeterminate sale went through."""
        sales = self.api.sales(self.session.terminal_id, start=since, limit=limit)
        if self.state == FAILED:
            self.history_checked = True
        return sales

    def retry(self, history_checked: bool = False) -> Optional[FundsCheck]:
        """
        Failed -> ConfirmPending, by re-running lookup, quote and funds check.

        Never calls the sale endpoint: the user must confirm again. Returns
        None (state CategorySelected) if the denomination has sold out.
        """
        self._require(FAILED)
        if self.error_kind == KIND_INDETERMINATE and not (history_checked or self.history_checked):
            raise LifecycleError("Sale outcome unknown: check sale history before retrying")

        previous = self.selection
        self.cache.invalidate_category(self.category)
        self.stock = self._load_stock()
        self.error = None
        self.receipt = None

        fresh = self._find_stock(previous.amount_cents, previous.voucher_type_id)
        if fresh is None:
            self.selection = None
            self.quote = None
            self.quote_error = None
            self.funds = None
            self.can_confirm = False
            self.state = CATEGORY_SELECTED
            self.message = f"{_rands(previous.amount_cents)} is sold out"
            return None

        self.selection = fresh
        self._quote()
        self.state = VALUE_SELECTED
        return self.review()
