# Overview: Service-layer operations for commission groups, rates, and per-sale commission quotes.

"""
Commission Calculator

A retailer is assigned one CommissionGroup; the group holds one rate row per
voucher type. A missing row is a hard failure (RateNotConfigured): there is
no default rate, so a sale can never silently under- or over-pay commission.

commission = amount * rate / 100, rounded half-up to the cent.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

from ..errors import CommissionError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Retailer, VoucherType, CommissionGroup, CommissionGroupRate

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class CommissionQuote:
    rate_pct: Decimal
    commission_cents: int
    agent_rate_pct: Decimal
    agent_commission_cents: int
    group_name: str

    def to_dict(self) -> dict:
        return {
            "rate_pct": str(self.rate_pct),
            "commission_cents": self.commission_cents,
            "agent_rate_pct": str(self.agent_rate_pct),
            "agent_commission_cents": self.agent_commission_cents,
            "group_name": self.group_name,
        }


def to_pct(value) -> Decimal:
    """Parse a percentage (0..100) into a Decimal."""
    try:
        pct = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"Invalid percentage: {value!r}")
    if not pct.is_finite() or pct < 0 or pct > HUNDRED:
        raise ValidationError(f"Percentage must be between 0 and 100, got {value!r}")
    return pct


def percent_of(amount_cents: int, pct) -> int:
    """amount * pct / 100 in cents, rounded half-up (standard rounding, not truncation)."""
    raw = Decimal(amount_cents) * Decimal(str(pct)) / HUNDRED
    return int(raw.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def compute_commission(retailer_id: int, voucher_type_id: int, amount_cents: int) -> CommissionQuote:
    """
    Quote the retailer and agent commission for one sale.

    Raises CommissionError (RateNotConfigured) if the retailer has no group or
    the group has no rate row for this exact voucher type.
    """
    if amount_cents is None or amount_cents <= 0:
        raise ValidationError("amount_cents must be a positive integer")

    retailer = db.session.get(Retailer, retailer_id)
    if not retailer:
        raise NotFoundError("Retailer not found")

    if not retailer.commission_group_id:
        raise CommissionError(
            "Retailer has no commission group assigned",
            details={"retailer_id": retailer_id, "voucher_type_id": voucher_type_id},
        )

    rate = (
        db.session.query(CommissionGroupRate)
        .filter_by(commission_group_id=retailer.commission_group_id, voucher_type_id=voucher_type_id)
        .first()
    )
    if not rate:
        raise CommissionError(
            "Commission rate not configured for this voucher type",
            details={
                "retailer_id": retailer_id,
                "voucher_type_id": voucher_type_id,
                "commission_group_id": retailer.commission_group_id,
            },
        )

    rate_pct = Decimal(rate.retailer_pct)
    agent_pct = Decimal(rate.agent_pct)
    return CommissionQuote(
        rate_pct=rate_pct,
        commission_cents=percent_of(amount_cents, rate_pct),
        agent_rate_pct=agent_pct,
        agent_commission_cents=percent_of(amount_cents, agent_pct),
        group_name=retailer.commission_group.name,
    )


def create_group(name: str, description: str | None = None) -> CommissionGroup:
    if not name or not name.strip():
        raise ValidationError("name is required")
    if db.session.query(CommissionGroup).filter_by(name=name.strip()).first():
        raise ValidationError(f"Commission group '{name}' already exists")

    group = CommissionGroup(name=name.strip(), description=description)
    db.session.add(group)
    db.session.commit()
    return group


def upsert_rate(group_id: int, voucher_type_id: int, retailer_pct, agent_pct=0) -> CommissionGroupRate:
    """Create or replace the rate row for (group, voucher type)."""
    group = db.session.get(CommissionGroup, group_id)
    if not group:
        raise NotFoundError("Commission group not found")
    if not db.session.get(VoucherType, voucher_type_id):
        raise NotFoundError("Voucher type not found")

    retailer_pct = to_pct(retailer_pct)
    agent_pct = to_pct(agent_pct)
    if retailer_pct + agent_pct > HUNDRED:
        raise ValidationError("Combined retailer and agent percentage cannot exceed 100")

    rate = (
        db.session.query(CommissionGroupRate)
        .filter_by(commission_group_id=group_id, voucher_type_id=voucher_type_id)
        .first()
    )
    if rate is None:
        rate = CommissionGroupRate(commission_group_id=group_id, voucher_type_id=voucher_type_id)
        db.session.add(rate)

    rate.retailer_pct = retailer_pct
    rate.agent_pct = agent_pct
    db.session.commit()
    return rate


def list_groups() -> list[CommissionGroup]:
    return db.session.query(CommissionGroup).order_by(CommissionGroup.name).all()


def assign_group(retailer_id: int, group_id: int) -> Retailer:
    retailer = db.session.get(Retailer, retailer_id)
    if not retailer:
        raise NotFoundError("Retailer not found")
    if not db.session.get(CommissionGroup, group_id):
        raise NotFoundError("Commission group not found")

    retailer.commission_group_id = group_id
    db.session.commit()
    return retailer
