"""
Sales Service - atomic voucher sale execution

WHY: A voucher PIN can be dispensed exactly once and the retailer's money
must move in the same unit of work. execute_sale is the single serialization
point between terminals racing for the same unit.

TRANSACTION (all-or-nothing):
1. Compare-and-swap the unit from available to sold (loser -> InventoryUnitUnavailable)
2. Re-validate funds under the retailer row lock (stale pre-flight -> InsufficientFunds)
3. Stamp sold_at
4. Insert the immutable Sale with both commission splits
5. Debit balance / raise credit used; credit retailer and agent commission; ledger row
6. Stamp the terminal's last_active_at

No retries here: a failed or unknown outcome goes back to the cashier.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..errors import (
    SaleError,
    NotFoundError,
    ValidationError,
    KIND_INVENTORY_UNIT_UNAVAILABLE,
    KIND_INSUFFICIENT_FUNDS,
)
from ..extensions import db
from ..models import Agent, Retailer, Sale, Terminal, VoucherInventory
from ..models.accounts import RETAILER_ACTIVE
from ..models.vouchers import UNIT_AVAILABLE, UNIT_SOLD
from ..time_utils import utcnow
from .commission_service import compute_commission, percent_of, to_pct
from .concurrency import begin_write_transaction, lock_for_update
from .funds_service import validate_retailer_funds
from .ledger_service import append_transaction, TX_SALE
from .receipts import SaleReceipt, build_receipt


def _require_positive_int(name: str, value) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise ValidationError(f"{name} must be a positive integer")
    return value


def _next_ref_number(now: datetime) -> str:
    return f"VS{now:%y%m%d}{uuid.uuid4().hex[:8].upper()}"


def execute_sale(
    *,
    inventory_unit_id: int,
    retailer_id: int,
    terminal_id: int,
    voucher_type_id: int,
    sale_amount_cents: int,
    retailer_commission_pct,
    agent_commission_pct,
    actor_user_id: int | None = None,
) -> SaleReceipt:
    """
    Sell one voucher unit. Returns the receipt or raises; on any error nothing
    is written (no unit marked sold, no balance change, no sale row).
    """
    _require_positive_int("inventory_unit_id", inventory_unit_id)
    _require_positive_int("retailer_id", retailer_id)
    _require_positive_int("terminal_id", terminal_id)
    _require_positive_int("voucher_type_id", voucher_type_id)
    _require_positive_int("sale_amount_cents", sale_amount_cents)
    retailer_pct = to_pct(retailer_commission_pct)
    agent_pct = to_pct(agent_commission_pct)

    try:
        begin_write_transaction()

        unit = db.session.query(VoucherInventory).filter_by(id=inventory_unit_id).populate_existing().first()
        if not unit:
            raise NotFoundError("Voucher unit not found", details={"inventory_unit_id": inventory_unit_id})
        if unit.voucher_type_id != voucher_type_id or unit.amount_cents != sale_amount_cents:
            raise ValidationError(
                "Voucher unit does not match the requested voucher type and amount",
                details={
                    "inventory_unit_id": inventory_unit_id,
                    "voucher_type_id": unit.voucher_type_id,
                    "amount_cents": unit.amount_cents,
                },
            )

        terminal = db.session.query(Terminal).filter_by(id=terminal_id).populate_existing().first()
        if not terminal:
            raise NotFoundError("Terminal not found")
        if terminal.retailer_id != retailer_id:
            raise ValidationError("Terminal does not belong to this retailer")
        if not terminal.is_active:
            raise ValidationError("Terminal is not active")

        retailer = (
            lock_for_update(db.session.query(Retailer).filter_by(id=retailer_id))
            .populate_existing()
            .first()
        )
        if not retailer:
            raise NotFoundError("Retailer not found")
        if retailer.status != RETAILER_ACTIVE:
            raise ValidationError("Retailer account is not active", details={"status": retailer.status})

        # 1. Compare-and-swap: at most one caller flips a given unit
        now = utcnow()
        result = db.session.execute(
            update(VoucherInventory)
            .where(VoucherInventory.id == inventory_unit_id, VoucherInventory.status == UNIT_AVAILABLE)
            .values(status=UNIT_SOLD, sold_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise SaleError(
                "Voucher is no longer available",
                kind=KIND_INVENTORY_UNIT_UNAVAILABLE,
                details={"inventory_unit_id": inventory_unit_id},
            )

        # 2. Authoritative funds check (same policy as the pre-flight)
        funds = validate_retailer_funds(retailer, sale_amount_cents)
        if not funds.fundable:
            raise SaleError(
                "Insufficient funds",
                kind=KIND_INSUFFICIENT_FUNDS,
                details=funds.to_dict(),
            )

        retailer_commission = percent_of(sale_amount_cents, retailer_pct)
        agent = None
        if retailer.agent_id:
            agent = (
                lock_for_update(db.session.query(Agent).filter_by(id=retailer.agent_id))
                .populate_existing()
                .first()
            )
        agent_commission = percent_of(sale_amount_cents, agent_pct) if agent else 0

        # 4. Immutable sale record
        sale = Sale(
            voucher_inventory_id=unit.id,
            voucher_type_id=voucher_type_id,
            retailer_id=retailer.id,
            terminal_id=terminal.id,
            agent_id=agent.id if agent else None,
            ref_number=_next_ref_number(now),
            sale_amount_cents=sale_amount_cents,
            retailer_commission_pct=retailer_pct,
            agent_commission_pct=agent_pct,
            retailer_commission_cents=retailer_commission,
            agent_commission_cents=agent_commission,
            from_balance_cents=funds.from_balance_cents,
            from_credit_cents=funds.from_credit_cents,
            sold_by_user_id=actor_user_id,
            created_at=now,
        )
        db.session.add(sale)
        db.session.flush()

        # 5. Money movement
        retailer.balance_cents -= funds.from_balance_cents
        retailer.credit_used_cents += funds.from_credit_cents
        retailer.commission_balance_cents += retailer_commission
        if agent:
            agent.commission_balance_cents += agent_commission

        append_transaction(
            retailer=retailer,
            transaction_type=TX_SALE,
            amount_cents=-sale_amount_cents,
            sale_id=sale.id,
            agent_id=agent.id if agent else None,
            actor_user_id=actor_user_id,
            occurred_at=now,
            note=f"Voucher sale {sale.ref_number} via terminal {terminal.name}",
        )

        # 6. Terminal activity
        terminal.last_active_at = now

        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        if not is_unit_conflict(exc):
            raise
        raise SaleError(
            "Voucher is no longer available",
            kind=KIND_INVENTORY_UNIT_UNAVAILABLE,
            details={"inventory_unit_id": inventory_unit_id},
        ) from exc
    except Exception:
        db.session.rollback()
        raise

    return build_receipt(sale, include_balances=True)


def is_unit_conflict(exc: IntegrityError) -> bool:
    """True when the violated constraint is uq_sales_voucher_inventory (one sale per unit)."""
    message = str(exc.orig)
    # Postgres reports the constraint name, SQLite the column
    return "uq_sales_voucher_inventory" in message or "sales.voucher_inventory_id" in message


def pick_unit(voucher_type_id: int, amount_cents: int) -> VoucherInventory | None:
    """Lowest-id available unit of a denomination (optimistic selection, not a reservation)."""
    return (
        db.session.query(VoucherInventory)
        .filter_by(voucher_type_id=voucher_type_id, amount_cents=amount_cents, status=UNIT_AVAILABLE)
        .order_by(VoucherInventory.id.asc())
        .first()
    )


def sell_from_terminal(
    terminal: Terminal,
    voucher_type_id: int,
    amount_cents: int,
    inventory_unit_id: int | None = None,
    actor_user_id: int | None = None,
) -> SaleReceipt:
    """
    Terminal-facing sale: commission is quoted server-side (RateNotConfigured
    blocks the sale before anything is written), then the executor runs.
    """
    _require_positive_int("voucher_type_id", voucher_type_id)
    _require_positive_int("amount_cents", amount_cents)

    quote = compute_commission(terminal.retailer_id, voucher_type_id, amount_cents)

    if inventory_unit_id is None:
        unit = pick_unit(voucher_type_id, amount_cents)
        if not unit:
            raise SaleError(
                "No stock available for this denomination",
                kind=KIND_INVENTORY_UNIT_UNAVAILABLE,
                details={"voucher_type_id": voucher_type_id, "amount_cents": amount_cents},
            )
        inventory_unit_id = unit.id

    return execute_sale(
        inventory_unit_id=inventory_unit_id,
        retailer_id=terminal.retailer_id,
        terminal_id=terminal.id,
        voucher_type_id=voucher_type_id,
        sale_amount_cents=amount_cents,
        retailer_commission_pct=quote.rate_pct,
        agent_commission_pct=quote.agent_rate_pct,
        actor_user_id=actor_user_id,
    )


def sale_history(
    *,
    terminal_id: int | None = None,
    retailer_id: int | None = None,
    agent_id: int | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = 100,
) -> list[Sale]:
    """Sales newest first. Used to resolve Indeterminate outcomes before re-selling."""
    query = db.session.query(Sale)
    if terminal_id is not None:
        query = query.filter(Sale.terminal_id == terminal_id)
    if retailer_id is not None:
        query = query.filter(Sale.retailer_id == retailer_id)
    if agent_id is not None:
        query = query.filter(Sale.agent_id == agent_id)
    if start is not None:
        query = query.filter(Sale.created_at >= start)
    if end is not None:
        query = query.filter(Sale.created_at <= end)
    return query.order_by(Sale.created_at.desc(), Sale.id.desc()).limit(limit).all()


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if not sale:
        raise NotFoundError("Sale not found")
    return sale


def get_receipt(sale_id: int) -> SaleReceipt:
    """Receipts are projections; recomputing one has no side effects."""
    return build_receipt(get_sale(sale_id))
