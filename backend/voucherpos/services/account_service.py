# Overview: Service-layer operations for retailers, agents and terminals; encapsulates business logic and database work.

from __future__ import annotations

from sqlalchemy import func

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Agent, Retailer, Sale, Terminal, User
from ..models.accounts import RETAILER_ACTIVE, RETAILER_SUSPENDED
from ..models.auth import ROLE_CASHIER, ROLE_RETAILER
from .auth_service import create_user


def create_agent(name: str) -> Agent:
    if not name or not name.strip():
        raise ValidationError("name required")
    agent = Agent(name=name.strip(), commission_balance_cents=0)
    db.session.add(agent)
    db.session.commit()
    return agent


def create_retailer(
    name: str,
    *,
    contact_name: str | None = None,
    contact_email: str | None = None,
    location: str | None = None,
    credit_limit_cents: int = 0,
    commission_group_id: int | None = None,
    agent_id: int | None = None,
) -> Retailer:
    """
    Open a retailer account with zero balance.

    Money only arrives through ledger_service.deposit so that every cent on
    the account has a ledger row behind it.
    """
    if not name or not name.strip():
        raise ValidationError("name required")
    if not isinstance(credit_limit_cents, int) or credit_limit_cents < 0:
        raise ValidationError("credit_limit_cents must be a non-negative integer")
    if agent_id is not None and not db.session.get(Agent, agent_id):
        raise NotFoundError("Agent not found")

    retailer = Retailer(
        name=name.strip(),
        contact_name=contact_name,
        contact_email=contact_email,
        location=location,
        status=RETAILER_ACTIVE,
        balance_cents=0,
        credit_limit_cents=credit_limit_cents,
        credit_used_cents=0,
        commission_balance_cents=0,
        commission_group_id=commission_group_id,
        agent_id=agent_id,
    )
    db.session.add(retailer)
    db.session.commit()
    return retailer


def get_retailer(retailer_id: int) -> Retailer:
    retailer = db.session.get(Retailer, retailer_id)
    if not retailer:
        raise NotFoundError("Retailer not found")
    return retailer


def list_retailers(agent_id: int | None = None, status: str | None = None) -> list[Retailer]:
    query = db.session.query(Retailer)
    if agent_id is not None:
        query = query.filter(Retailer.agent_id == agent_id)
    if status:
        query = query.filter(Retailer.status == status)
    return query.order_by(Retailer.name.asc(), Retailer.id.asc()).all()


def set_retailer_status(retailer_id: int, status: str) -> Retailer:
    """Suspended retailers keep their money but cannot sell."""
    if status not in (RETAILER_ACTIVE, RETAILER_SUSPENDED):
        raise ValidationError(f"Invalid status: {status}")
    retailer = get_retailer(retailer_id)
    retailer.status = status
    db.session.commit()
    return retailer


def assign_agent(retailer_id: int, agent_id: int | None) -> Retailer:
    retailer = get_retailer(retailer_id)
    if agent_id is not None and not db.session.get(Agent, agent_id):
        raise NotFoundError("Agent not found")
    retailer.agent_id = agent_id
    db.session.commit()
    return retailer


def create_terminal(retailer_id: int, name: str) -> Terminal:
    retailer = get_retailer(retailer_id)
    if not name or not name.strip():
        raise ValidationError("name required")

    exists = db.session.query(Terminal).filter_by(retailer_id=retailer.id, name=name.strip()).first()
    if exists:
        raise ValidationError("Terminal name already used for this retailer")

    terminal = Terminal(retailer_id=retailer.id, name=name.strip(), is_active=True)
    db.session.add(terminal)
    db.session.commit()
    return terminal


def set_terminal_active(terminal_id: int, is_active: bool) -> Terminal:
    terminal = db.session.get(Terminal, terminal_id)
    if not terminal:
        raise NotFoundError("Terminal not found")
    terminal.is_active = bool(is_active)
    db.session.commit()
    return terminal


def create_cashier(terminal_id: int, username: str, email: str, password: str, rounds: int = 12) -> User:
    """
    Create a cashier login and bind it to a terminal.

    A terminal has at most one cashier; re-binding replaces the previous one.
    """
    terminal = db.session.get(Terminal, terminal_id)
    if not terminal:
        raise NotFoundError("Terminal not found")

    user = create_user(
        username=username,
        email=email,
        password=password,
        role=ROLE_CASHIER,
        retailer_id=terminal.retailer_id,
        rounds=rounds,
    )
    terminal.cashier_user_id = user.id
    db.session.commit()
    return user


def terminals_for_user(user: User) -> list[Terminal]:
    """Terminals a user may sell from: its own for a cashier, all active ones for a retailer."""
    if user.role == ROLE_CASHIER:
        terminal = db.session.query(Terminal).filter_by(cashier_user_id=user.id).first()
        return [terminal] if terminal else []
    if user.role == ROLE_RETAILER and user.retailer_id:
        return (
            db.session.query(Terminal)
            .filter_by(retailer_id=user.retailer_id, is_active=True)
            .order_by(Terminal.id.asc())
            .all()
        )
    return []


def resolve_terminal(user: User, terminal_id: int | None = None) -> Terminal:
    """
    Pick the terminal a request acts on.

    Cashiers always get their bound terminal (terminal_id must match if sent).
    Retailer owners must name one of their terminals unless they only have one.
    """
    terminals = terminals_for_user(user)
    if not terminals:
        raise NotFoundError("No terminal is assigned to this user")

    if terminal_id is None:
        if len(terminals) > 1:
            raise ValidationError("terminal_id required", details={
                "terminal_ids": [t.id for t in terminals],
            })
        return terminals[0]

    for terminal in terminals:
        if terminal.id == terminal_id:
            return terminal
    raise NotFoundError("Terminal not found")


def agent_commission_summary(agent_id: int) -> dict:
    """Commission balance plus per-retailer sale totals for an agent."""
    agent = db.session.get(Agent, agent_id)
    if not agent:
        raise NotFoundError("Agent not found")

    rows = (
        db.session.query(
            Sale.retailer_id,
            func.count(Sale.id),
            func.coalesce(func.sum(Sale.sale_amount_cents), 0),
            func.coalesce(func.sum(Sale.agent_commission_cents), 0),
        )
        .filter(Sale.agent_id == agent.id)
        .group_by(Sale.retailer_id)
        .all()
    )
    totals = {
        retailer_id: {
            "sale_count": int(count),
            "sales_cents": int(sales),
            "agent_commission_cents": int(commission),
        }
        for retailer_id, count, sales, commission in rows
    }

    retailers = []
    for retailer in list_retailers(agent_id=agent.id):
        entry = {"retailer_id": retailer.id, "retailer_name": retailer.name, "status": retailer.status}
        entry.update(totals.get(retailer.id, {"sale_count": 0, "sales_cents": 0, "agent_commission_cents": 0}))
        retailers.append(entry)

    return {
        "agent": agent.to_dict(),
        "retailers": retailers,
    }
