# Overview: Funds availability check shared by the pre-flight endpoint, the terminal client, and the sale executor.

"""
Funds policy:

- available credit = credit limit - credit used (never below zero)
- total available = balance + available credit
- a sale is fundable iff amount <= total available
- the split spends balance first, credit covers the overflow

Pure functions only: no database access, so the client pre-flight and the
in-transaction re-check always reach the same decision.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict

from ..errors import ValidationError


@dataclass(frozen=True)
class FundsCheck:
    fundable: bool
    amount_cents: int
    from_balance_cents: int
    from_credit_cents: int
    available_credit_cents: int
    total_available_cents: int

    @property
    def shortfall_cents(self) -> int:
        return max(self.amount_cents - self.total_available_cents, 0)

    def to_dict(self) -> dict:
        return asdict(self)


def validate_funds(
    balance_cents: int,
    credit_limit_cents: int,
    credit_used_cents: int,
    amount_cents: int,
) -> FundsCheck:
    if amount_cents is None or amount_cents <= 0:
        raise ValidationError("amount_cents must be a positive integer")

    spendable_balance = max(balance_cents, 0)
    available_credit = max(credit_limit_cents - credit_used_cents, 0)
    total_available = spendable_balance + available_credit

    if amount_cents > total_available:
        return FundsCheck(
            fundable=False,
            amount_cents=amount_cents,
            from_balance_cents=0,
            from_credit_cents=0,
            available_credit_cents=available_credit,
            total_available_cents=total_available,
        )

    from_balance = min(spendable_balance, amount_cents)
    return FundsCheck(
        fundable=True,
        amount_cents=amount_cents,
        from_balance_cents=from_balance,
        from_credit_cents=amount_cents - from_balance,
        available_credit_cents=available_credit,
        total_available_cents=total_available,
    )


def validate_retailer_funds(retailer, amount_cents: int) -> FundsCheck:
    """Convenience wrapper for anything with the Retailer balance attributes."""
    return validate_funds(
        retailer.balance_cents,
        retailer.credit_limit_cents,
        retailer.credit_used_cents,
        amount_cents,
    )
