# Overview: Service-layer operations for reporting; sales, earnings and stock reports plus agent statements.

from __future__ import annotations

from datetime import datetime

from sqlalchemy import case, func

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Agent, Retailer, RetailerTransaction, Sale, Terminal, VoucherInventory, VoucherType
from ..models.vouchers import UNIT_AVAILABLE, UNIT_SOLD
from ..time_utils import parse_iso_datetime, utcnow, to_utc_z


def _parse_range(start: str | None, end: str | None) -> tuple[datetime | None, datetime | None]:
    try:
        start_dt = parse_iso_datetime(start) if start else None
        end_dt = parse_iso_datetime(end) if end else None
    except ValueError:
        raise ValidationError("start and end must be ISO-8601 datetimes") from None
    if start_dt and end_dt and start_dt > end_dt:
        raise ValidationError("start must not be after end")
    return start_dt, end_dt


def _get_agent(agent_id: int) -> Agent:
    agent = db.session.get(Agent, agent_id)
    if not agent:
        raise NotFoundError("Agent not found")
    return agent


def sales_report(
    *,
    start: str | None,
    end: str | None,
    retailer_id: int | None = None,
    limit: int = 500,
) -> dict:
    """Sales newest first, one row per sale with terminal, retailer and voucher type names."""
    start_dt, end_dt = _parse_range(start, end)

    query = (
        db.session.query(
            Sale,
            Terminal.name.label("terminal_name"),
            Retailer.name.label("retailer_name"),
            VoucherType.name.label("voucher_type_name"),
        )
        .join(Terminal, Terminal.id == Sale.terminal_id)
        .join(Retailer, Retailer.id == Sale.retailer_id)
        .join(VoucherType, VoucherType.id == Sale.voucher_type_id)
    )
    if retailer_id is not None:
        query = query.filter(Sale.retailer_id == retailer_id)
    if start_dt:
        query = query.filter(Sale.created_at >= start_dt)
    if end_dt:
        query = query.filter(Sale.created_at <= end_dt)

    rows = query.order_by(Sale.created_at.desc(), Sale.id.desc()).limit(limit).all()
    return {
        "start": to_utc_z(start_dt),
        "end": to_utc_z(end_dt),
        "rows": [
            {
                "sale_id": sale.id,
                "ref_number": sale.ref_number,
                "created_at": to_utc_z(sale.created_at),
                "terminal_name": terminal_name,
                "retailer_name": retailer_name,
                "voucher_type_name": voucher_type_name,
                "sale_amount_cents": sale.sale_amount_cents,
                "retailer_commission_cents": sale.retailer_commission_cents,
                "agent_commission_cents": sale.agent_commission_cents,
            }
            for sale, terminal_name, retailer_name, voucher_type_name in rows
        ],
    }


def earnings_summary(*, start: str | None, end: str | None) -> dict:
    """Sale count, face value and both commission splits per voucher type."""
    start_dt, end_dt = _parse_range(start, end)

    query = (
        db.session.query(
            VoucherType.id.label("voucher_type_id"),
            VoucherType.name.label("voucher_type_name"),
            func.count(Sale.id).label("sale_count"),
            func.coalesce(func.sum(Sale.sale_amount_cents), 0).label("sales_cents"),
            func.coalesce(func.sum(Sale.retailer_commission_cents), 0).label("retailer_commission_cents"),
            func.coalesce(func.sum(Sale.agent_commission_cents), 0).label("agent_commission_cents"),
        )
        .join(VoucherType, VoucherType.id == Sale.voucher_type_id)
    )
    if start_dt:
        query = query.filter(Sale.created_at >= start_dt)
    if end_dt:
        query = query.filter(Sale.created_at <= end_dt)

    rows = query.group_by(VoucherType.id, VoucherType.name).order_by(VoucherType.name.asc()).all()
    report_rows = [
        {
            "voucher_type_id": row.voucher_type_id,
            "voucher_type_name": row.voucher_type_name,
            "sale_count": int(row.sale_count or 0),
            "sales_cents": int(row.sales_cents or 0),
            "retailer_commission_cents": int(row.retailer_commission_cents or 0),
            "agent_commission_cents": int(row.agent_commission_cents or 0),
        }
        for row in rows
    ]
    totals = {
        key: sum(r[key] for r in report_rows)
        for key in ("sale_count", "sales_cents", "retailer_commission_cents", "agent_commission_cents")
    }
    return {
        "start": to_utc_z(start_dt),
        "end": to_utc_z(end_dt),
        "rows": report_rows,
        "totals": totals,
    }


def inventory_report() -> dict:
    """Available and sold unit counts for every voucher type, including types with no stock."""
    available = func.coalesce(func.sum(case((VoucherInventory.status == UNIT_AVAILABLE, 1), else_=0)), 0)
    sold = func.coalesce(func.sum(case((VoucherInventory.status == UNIT_SOLD, 1), else_=0)), 0)

    rows = (
        db.session.query(
            VoucherType.id,
            VoucherType.name,
            VoucherType.category,
            VoucherType.is_active,
            available.label("available"),
            sold.label("sold"),
        )
        .outerjoin(VoucherInventory, VoucherInventory.voucher_type_id == VoucherType.id)
        .group_by(VoucherType.id, VoucherType.name, VoucherType.category, VoucherType.is_active)
        .order_by(VoucherType.name.asc())
        .all()
    )
    return {
        "rows": [
            {
                "voucher_type_id": row.id,
                "voucher_type_name": row.name,
                "category": row.category,
                "is_active": row.is_active,
                "available": int(row.available),
                "sold": int(row.sold),
            }
            for row in rows
        ],
    }


def agent_summary(agent_id: int, now: datetime | None = None) -> dict:
    """
    Headline numbers for the agent portal.

    Month-to-date and year-to-date windows start at midnight UTC on the
    first of the month / year containing `now`.
    """
    agent = _get_agent(agent_id)
    now = now or utcnow()
    month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    year_start = month_start.replace(month=1)

    retailer_count = db.session.query(func.count(Retailer.id)).filter(Retailer.agent_id == agent.id).scalar()

    mtd = (
        db.session.query(
            func.count(Sale.id),
            func.coalesce(func.sum(Sale.sale_amount_cents), 0),
            func.coalesce(func.sum(Sale.agent_commission_cents), 0),
        )
        .filter(Sale.agent_id == agent.id, Sale.created_at >= month_start, Sale.created_at <= now)
        .one()
    )
    ytd_commission = (
        db.session.query(func.coalesce(func.sum(Sale.agent_commission_cents), 0))
        .filter(Sale.agent_id == agent.id, Sale.created_at >= year_start, Sale.created_at <= now)
        .scalar()
    )

    return {
        "agent": agent.to_dict(),
        "as_of": to_utc_z(now),
        "retailer_count": int(retailer_count or 0),
        "mtd_sale_count": int(mtd[0] or 0),
        "mtd_sales_cents": int(mtd[1] or 0),
        "mtd_commission_cents": int(mtd[2] or 0),
        "ytd_commission_cents": int(ytd_commission or 0),
    }


def agent_statements(agent_id: int, *, start: str | None, end: str | None, limit: int = 500) -> dict:
    """Ledger rows that earned the agent commission, newest first, with the retailer's name."""
    agent = _get_agent(agent_id)
    start_dt, end_dt = _parse_range(start, end)

    query = (
        db.session.query(RetailerTransaction, Retailer.name, Sale.agent_commission_cents)
        .join(Retailer, Retailer.id == RetailerTransaction.retailer_id)
        .outerjoin(Sale, Sale.id == RetailerTransaction.sale_id)
        .filter(RetailerTransaction.agent_id == agent.id)
    )
    if start_dt:
        query = query.filter(RetailerTransaction.occurred_at >= start_dt)
    if end_dt:
        query = query.filter(RetailerTransaction.occurred_at <= end_dt)

    rows = query.order_by(RetailerTransaction.occurred_at.desc(), RetailerTransaction.id.desc()).limit(limit).all()

    statements = []
    for txn, retailer_name, agent_commission_cents in rows:
        entry = txn.to_dict()
        entry["retailer_name"] = retailer_name
        entry["agent_commission_cents"] = agent_commission_cents or 0
        statements.append(entry)

    return {
        "agent_id": agent.id,
        "start": to_utc_z(start_dt),
        "end": to_utc_z(end_dt),
        "statements": statements,
        "count": len(statements),
    }
