# Overview: Service-layer operations for the retailer account ledger; encapsulates business logic and database work.

from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Retailer, RetailerTransaction
from voucherpos.time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry
"""
Retailer Ledger Invariants (authoritative)

- Append-only: one RetailerTransaction per balance, credit, or commission movement.
- Rows are written inside the same DB transaction as the change they record.
- balance/credit snapshots on each row are the values after the change.
- Admin operations below are the only writers besides the sale executor.
"""

TX_SALE = "sale"
TX_DEPOSIT = "deposit"
TX_ADJUSTMENT = "adjustment"
TX_CREDIT_LIMIT = "credit_limit"


def append_transaction(
    *,
    retailer: Retailer,
    transaction_type: str,
    amount_cents: int,
    sale_id: int | None = None,
    agent_id: int | None = None,
    actor_user_id: int | None = None,
    occurred_at: Optional[datetime] = None,
    note: Optional[str] = None,
) -> RetailerTransaction:
    """
    Append a ledger row snapshotting the retailer's balances.

    - No domain logic here; callers have already applied the change.
    - Flushes but never commits.
    """
    tx = RetailerTransaction(
        retailer_id=retailer.id,
        transaction_type=transaction_type,
        amount_cents=amount_cents,
        balance_after_cents=retailer.balance_cents,
        credit_used_after_cents=retailer.credit_used_cents,
        commission_balance_after_cents=retailer.commission_balance_cents,
        sale_id=sale_id,
        agent_id=agent_id,
        actor_user_id=actor_user_id,
        occurred_at=occurred_at or utcnow(),
        note=note,
    )
    db.session.add(tx)
    db.session.flush()
    return tx


def _locked_retailer(retailer_id: int) -> Retailer:
    retailer = (
        lock_for_update(db.session.query(Retailer).filter_by(id=retailer_id))
        .populate_existing()
        .first()
    )
    if not retailer:
        raise NotFoundError("Retailer not found")
    return retailer


def deposit(retailer_id: int, amount_cents: int, actor_user_id: int | None = None, note: str | None = None) -> Retailer:
    """
    Load funds onto a retailer account.

    Outstanding credit is repaid first; the remainder lands on the balance.
    """
    if not isinstance(amount_cents, int) or amount_cents <= 0:
        raise ValidationError("amount_cents must be a positive integer")

    def _op():
        retailer = _locked_retailer(retailer_id)

        repay = min(retailer.credit_used_cents, amount_cents)
        retailer.credit_used_cents -= repay
        retailer.balance_cents += amount_cents - repay

        append_transaction(
            retailer=retailer,
            transaction_type=TX_DEPOSIT,
            amount_cents=amount_cents,
            actor_user_id=actor_user_id,
            note=note or (f"Deposit (credit repaid {repay})" if repay else "Deposit"),
        )
        db.session.commit()
        return retailer

    return run_with_retry(_op)


def adjust_balance(retailer_id: int, delta_cents: int, actor_user_id: int | None, reason: str) -> Retailer:
    """Manual balance correction. Cannot take the balance below zero."""
    if not isinstance(delta_cents, int) or delta_cents == 0:
        raise ValidationError("delta_cents must be a non-zero integer")
    if not reason:
        raise ValidationError("reason required")

    def _op():
        retailer = _locked_retailer(retailer_id)
        if retailer.balance_cents + delta_cents < 0:
            raise ValidationError(
                "Adjustment would make the balance negative",
                details={"balance_cents": retailer.balance_cents, "delta_cents": delta_cents},
            )

        retailer.balance_cents += delta_cents
        append_transaction(
            retailer=retailer,
            transaction_type=TX_ADJUSTMENT,
            amount_cents=delta_cents,
            actor_user_id=actor_user_id,
            note=reason,
        )
        db.session.commit()
        return retailer

    return run_with_retry(_op)


def set_credit_limit(retailer_id: int, credit_limit_cents: int, actor_user_id: int | None = None) -> Retailer:
    """Change the credit limit. Rejected if it would fall below credit already used."""
    if not isinstance(credit_limit_cents, int) or credit_limit_cents < 0:
        raise ValidationError("credit_limit_cents must be a non-negative integer")

    def _op():
        retailer = _locked_retailer(retailer_id)
        if credit_limit_cents < retailer.credit_used_cents:
            raise ValidationError(
                "Credit limit cannot be below credit already used",
                details={"credit_used_cents": retailer.credit_used_cents},
            )

        change = credit_limit_cents - retailer.credit_limit_cents
        retailer.credit_limit_cents = credit_limit_cents
        append_transaction(
            retailer=retailer,
            transaction_type=TX_CREDIT_LIMIT,
            amount_cents=change,
            actor_user_id=actor_user_id,
            note=f"Credit limit set to {credit_limit_cents}",
        )
        db.session.commit()
        return retailer

    return run_with_retry(_op)


def list_transactions(retailer_id: int, limit: int = 100) -> list[RetailerTransaction]:
    return (
        db.session.query(RetailerTransaction)
        .filter_by(retailer_id=retailer_id)
        .order_by(RetailerTransaction.occurred_at.desc(), RetailerTransaction.id.desc())
        .limit(limit)
        .all()
    )
