# Overview: Explicit terminal session object passed through the client (no module-level state).

from __future__ import annotations

from dataclasses import dataclass

from ..services.funds_service import FundsCheck, validate_funds


@dataclass
class TerminalSession:
    """
    Who is selling, from which terminal, and the last retailer balance snapshot.

    The balance fields are display snapshots. They are refreshed from the
    server before confirmation and from each sale receipt, and are never the
    basis of a write.
    """
    token: str
    user_id: int
    username: str
    role: str
    terminal_id: int
    terminal_name: str
    retailer_id: int
    retailer_name: str
    balance_cents: int = 0
    credit_limit_cents: int = 0
    credit_used_cents: int = 0
    commission_balance_cents: int = 0

    @classmethod
    def from_profile(cls, token: str, profile: dict) -> "TerminalSession":
        user = profile.get("user") or {}
        terminal = profile.get("terminal") or {}
        retailer = profile.get("retailer") or {}
        session = cls(
            token=token,
            user_id=user.get("id"),
            username=user.get("username") or "",
            role=user.get("role") or "",
            terminal_id=terminal.get("id"),
            terminal_name=terminal.get("name") or "",
            retailer_id=retailer.get("id"),
            retailer_name=retailer.get("name") or "",
        )
        session.update_balances(retailer)
        return session

    def update_balances(self, retailer: dict) -> None:
        self.balance_cents = retailer.get("balance_cents", self.balance_cents) or 0
        self.credit_limit_cents = retailer.get("credit_limit_cents", self.credit_limit_cents) or 0
        self.credit_used_cents = retailer.get("credit_used_cents", self.credit_used_cents) or 0
        self.commission_balance_cents = (
            retailer.get("commission_balance_cents", self.commission_balance_cents) or 0
        )

    def apply_receipt(self, receipt) -> None:
        """Take the post-sale balances from a receipt when it carries them."""
        if receipt.balance_after_cents is not None:
            self.balance_cents = receipt.balance_after_cents
        if receipt.credit_used_after_cents is not None:
            self.credit_used_cents = receipt.credit_used_after_cents
        if receipt.commission_balance_after_cents is not None:
            self.commission_balance_cents = receipt.commission_balance_after_cents

    @property
    def available_credit_cents(self) -> int:
        return max(self.credit_limit_cents - self.credit_used_cents, 0)

    def funds_for(self, amount_cents: int) -> FundsCheck:
        return validate_funds(
            self.balance_cents,
            self.credit_limit_cents,
            self.credit_used_cents,
            amount_cents,
        )
