from __future__ import annotations

from ..extensions import db
from voucherpos.time_utils import to_utc_z


RETAILER_ACTIVE = "active"
RETAILER_SUSPENDED = "suspended"


class Agent(db.Model):
    """Sales agent earning commission on the retailers assigned to it."""
    __tablename__ = "agents"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    commission_balance_cents = db.Column(db.Integer, nullable=False, default=0)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "commission_balance_cents": self.commission_balance_cents,
            "created_at": to_utc_z(self.created_at),
        }


class Retailer(db.Model):
    """
    Retailer account: the tenant that owns balance, credit and commission.

    INVARIANTS:
    - credit_used_cents <= credit_limit_cents
    - balance_cents >= 0 after every successful sale
    - Balances change only inside the sale executor or the ledgered
      admin operations (ledger_service); every change appends a
      RetailerTransaction.
    """
    __tablename__ = "retailers"
    __table_args__ = (
        db.CheckConstraint("credit_used_cents <= credit_limit_cents", name="ck_retailers_credit_within_limit"),
        db.CheckConstraint("balance_cents >= 0", name="ck_retailers_balance_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    contact_name = db.Column(db.String(128), nullable=True)
    contact_email = db.Column(db.String(255), nullable=True)
    location = db.Column(db.String(255), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=RETAILER_ACTIVE, index=True)

    # Financials (all amounts in cents)
    balance_cents = db.Column(db.Integer, nullable=False, default=0)
    credit_limit_cents = db.Column(db.Integer, nullable=False, default=0)
    credit_used_cents = db.Column(db.Integer, nullable=False, default=0)
    commission_balance_cents = db.Column(db.Integer, nullable=False, default=0)

    commission_group_id = db.Column(db.Integer, db.ForeignKey("commission_groups.id"), nullable=True, index=True)
    agent_id = db.Column(db.Integer, db.ForeignKey("agents.id"), nullable=True, index=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    commission_group = db.relationship("CommissionGroup", backref=db.backref("retailers", lazy=True))
    agent = db.relationship("Agent", backref=db.backref("retailers", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def available_credit_cents(self) -> int:
        return max(self.credit_limit_cents - self.credit_used_cents, 0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "contact_name": self.contact_name,
            "contact_email": self.contact_email,
            "location": self.location,
            "status": self.status,
            "balance_cents": self.balance_cents,
            "credit_limit_cents": self.credit_limit_cents,
            "credit_used_cents": self.credit_used_cents,
            "available_credit_cents": self.available_credit_cents,
            "commission_balance_cents": self.commission_balance_cents,
            "commission_group_id": self.commission_group_id,
            "agent_id": self.agent_id,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
        }


class Terminal(db.Model):
    """
    Cashier-facing point-of-sale terminal tied to one retailer.

    Terminals are never deleted; deactivate instead.
    """
    __tablename__ = "terminals"
    __table_args__ = (
        db.UniqueConstraint("retailer_id", "name", name="uq_terminals_retailer_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    retailer_id = db.Column(db.Integer, db.ForeignKey("retailers.id"), nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)

    cashier_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, unique=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    last_active_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    retailer = db.relationship("Retailer", backref=db.backref("terminals", lazy=True))
    cashier = db.relationship("User", foreign_keys=[cashier_user_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "retailer_id": self.retailer_id,
            "name": self.name,
            "cashier_user_id": self.cashier_user_id,
            "is_active": self.is_active,
            "last_active_at": to_utc_z(self.last_active_at) if self.last_active_at else None,
            "created_at": to_utc_z(self.created_at),
        }
