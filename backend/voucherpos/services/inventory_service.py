# Overview: Service-layer operations for voucher inventory; read-side lookups and stock loading.

"""
Voucher Inventory Service

Lookups only ever see units with status = available. Sold units are
immutable and are written exclusively by sales_service.execute_sale.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from datetime import date
from typing import Iterable

from sqlalchemy import func

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import VoucherType, VoucherInventory
from ..models.vouchers import UNIT_AVAILABLE, UNIT_SOLD


@dataclass(frozen=True)
class DenominationStock:
    """Available stock for one denomination of one voucher type."""
    voucher_type_id: int
    voucher_type_name: str
    network_provider: str | None
    category: str
    sub_category: str | None
    amount_cents: int
    available_count: int
    next_unit_id: int

    def to_dict(self) -> dict:
        return asdict(self)


def _normalize(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip().lower()
    return value or None


def list_available(
    category: str,
    network_provider: str | None = None,
    sub_category: str | None = None,
) -> list[DenominationStock]:
    """
    Available stock grouped by (voucher type, denomination), ascending by amount.

    An empty list means "no stock" and is not an error.
    """
    category = _normalize(category)
    if not category:
        raise ValidationError("category is required")

    query = (
        db.session.query(
            VoucherType.id,
            VoucherType.name,
            VoucherType.network_provider,
            VoucherType.category,
            VoucherType.sub_category,
            VoucherInventory.amount_cents,
            func.count(VoucherInventory.id),
            func.min(VoucherInventory.id),
        )
        .join(VoucherInventory, VoucherInventory.voucher_type_id == VoucherType.id)
        .filter(
            VoucherType.is_active.is_(True),
            func.lower(VoucherType.category) == category,
            VoucherInventory.status == UNIT_AVAILABLE,
        )
    )

    network_provider = _normalize(network_provider)
    if network_provider:
        query = query.filter(func.lower(VoucherType.network_provider) == network_provider)

    sub_category = _normalize(sub_category)
    if sub_category:
        query = query.filter(func.lower(VoucherType.sub_category) == sub_category)

    rows = (
        query.group_by(
            VoucherType.id,
            VoucherType.name,
            VoucherType.network_provider,
            VoucherType.category,
            VoucherType.sub_category,
            VoucherInventory.amount_cents,
        )
        .having(func.count(VoucherInventory.id) > 0)
        .order_by(VoucherInventory.amount_cents.asc(), VoucherType.name.asc())
        .all()
    )

    return [
        DenominationStock(
            voucher_type_id=type_id,
            voucher_type_name=name,
            network_provider=network,
            category=cat,
            sub_category=sub,
            amount_cents=amount,
            available_count=count,
            next_unit_id=next_unit_id,
        )
        for type_id, name, network, cat, sub, amount, count, next_unit_id in rows
    ]


def list_categories() -> list[str]:
    """Distinct categories of active voucher types that have stock."""
    rows = (
        db.session.query(func.lower(VoucherType.category))
        .join(VoucherInventory, VoucherInventory.voucher_type_id == VoucherType.id)
        .filter(VoucherType.is_active.is_(True), VoucherInventory.status == UNIT_AVAILABLE)
        .distinct()
        .order_by(func.lower(VoucherType.category))
        .all()
    )
    return [row[0] for row in rows]


def list_networks(category: str) -> list[str]:
    category = _normalize(category)
    if not category:
        raise ValidationError("category is required")
    rows = (
        db.session.query(VoucherType.network_provider)
        .join(VoucherInventory, VoucherInventory.voucher_type_id == VoucherType.id)
        .filter(
            VoucherType.is_active.is_(True),
            func.lower(VoucherType.category) == category,
            VoucherType.network_provider.isnot(None),
            VoucherInventory.status == UNIT_AVAILABLE,
        )
        .distinct()
        .order_by(VoucherType.network_provider)
        .all()
    )
    return [row[0] for row in rows]


def create_voucher_type(
    name: str,
    category: str,
    network_provider: str | None = None,
    sub_category: str | None = None,
    instructions: str | None = None,
    help_text: str | None = None,
) -> VoucherType:
    if not name or not name.strip():
        raise ValidationError("name is required")
    if not _normalize(category):
        raise ValidationError("category is required")
    if db.session.query(VoucherType).filter_by(name=name.strip()).first():
        raise ValidationError(f"Voucher type '{name}' already exists")

    voucher_type = VoucherType(
        name=name.strip(),
        category=_normalize(category),
        network_provider=network_provider.strip() if network_provider else None,
        sub_category=_normalize(sub_category),
        instructions=instructions,
        help_text=help_text,
        is_active=True,
    )
    db.session.add(voucher_type)
    db.session.commit()
    return voucher_type


def add_inventory_units(voucher_type_id: int, units: Iterable[dict]) -> int:
    """
    Load already-parsed voucher units for a type.

    Each unit: {"amount_cents": int, "pin": str, "serial_number": str|None,
    "expiry_date": "YYYY-MM-DD"|None}. The whole batch is rejected if any
    PIN is missing or duplicated (within the batch or against stock).

    Returns the number of units inserted.
    """
    voucher_type = db.session.get(VoucherType, voucher_type_id)
    if not voucher_type:
        raise NotFoundError("Voucher type not found")

    rows = []
    seen_pins: set[str] = set()
    for index, unit in enumerate(units, start=1):
        pin = str(unit.get("pin") or "").strip()
        amount_cents = unit.get("amount_cents")
        if not pin:
            raise ValidationError(f"Unit {index}: pin is required")
        if not isinstance(amount_cents, int) or isinstance(amount_cents, bool) or amount_cents <= 0:
            raise ValidationError(f"Unit {index}: amount_cents must be a positive integer")
        if pin in seen_pins:
            raise ValidationError(f"Unit {index}: duplicate pin in batch")
        seen_pins.add(pin)

        expiry = unit.get("expiry_date")
        try:
            expiry_date = date.fromisoformat(expiry) if expiry else None
        except (TypeError, ValueError):
            raise ValidationError(f"Unit {index}: expiry_date must be YYYY-MM-DD") from None
        rows.append(VoucherInventory(
            voucher_type_id=voucher_type.id,
            amount_cents=amount_cents,
            pin=pin,
            serial_number=unit.get("serial_number"),
            expiry_date=expiry_date,
            status=UNIT_AVAILABLE,
        ))

    if not rows:
        raise ValidationError("No units supplied")

    existing = (
        db.session.query(VoucherInventory.pin)
        .filter(
            VoucherInventory.voucher_type_id == voucher_type.id,
            VoucherInventory.pin.in_(sorted(seen_pins)),
        )
        .first()
    )
    if existing:
        raise ValidationError("Batch contains a pin that is already loaded", details={"pin": existing[0]})

    db.session.add_all(rows)
    db.session.commit()
    return len(rows)


def inventory_summary(voucher_type_id: int) -> dict:
    """Available and sold counts per denomination for one voucher type."""
    voucher_type = db.session.get(VoucherType, voucher_type_id)
    if not voucher_type:
        raise NotFoundError("Voucher type not found")

    rows = (
        db.session.query(
            VoucherInventory.amount_cents,
            VoucherInventory.status,
            func.count(VoucherInventory.id),
        )
        .filter(VoucherInventory.voucher_type_id == voucher_type_id)
        .group_by(VoucherInventory.amount_cents, VoucherInventory.status)
        .all()
    )

    by_amount: dict[int, dict] = {}
    for amount_cents, status, count in rows:
        entry = by_amount.setdefault(amount_cents, {"amount_cents": amount_cents, "available": 0, "sold": 0})
        if status == UNIT_AVAILABLE:
            entry["available"] += count
        elif status == UNIT_SOLD:
            entry["sold"] += count

    return {
        "voucher_type": voucher_type.to_dict(),
        "denominations": [by_amount[k] for k in sorted(by_amount)],
    }
