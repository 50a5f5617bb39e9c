from __future__ import annotations

from ..extensions import db
from voucherpos.time_utils import to_utc_z


class Sale(db.Model):
    """
    Completed voucher sale.

    IMMUTABLE: created once by the sale executor, never updated or deleted.
    The unique constraint on voucher_inventory_id backs the
    at-most-one-sale-per-unit rule at the database level.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("voucher_inventory_id", name="uq_sales_voucher_inventory"),
        db.UniqueConstraint("ref_number", name="uq_sales_ref_number"),
        db.Index("ix_sales_terminal_created", "terminal_id", "created_at"),
        db.Index("ix_sales_retailer_created", "retailer_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    voucher_inventory_id = db.Column(db.Integer, db.ForeignKey("voucher_inventory.id"), nullable=False)
    voucher_type_id = db.Column(db.Integer, db.ForeignKey("voucher_types.id"), nullable=False, index=True)
    retailer_id = db.Column(db.Integer, db.ForeignKey("retailers.id"), nullable=False)
    terminal_id = db.Column(db.Integer, db.ForeignKey("terminals.id"), nullable=False)
    agent_id = db.Column(db.Integer, db.ForeignKey("agents.id"), nullable=True, index=True)

    # Human-readable reference printed on the receipt
    ref_number = db.Column(db.String(32), nullable=False)

    # Amounts (cents)
    sale_amount_cents = db.Column(db.Integer, nullable=False)
    retailer_commission_pct = db.Column(db.Numeric(6, 3), nullable=False)
    agent_commission_pct = db.Column(db.Numeric(6, 3), nullable=False)
    retailer_commission_cents = db.Column(db.Integer, nullable=False)
    agent_commission_cents = db.Column(db.Integer, nullable=False)

    # Funding split (balance first, credit overflow)
    from_balance_cents = db.Column(db.Integer, nullable=False)
    from_credit_cents = db.Column(db.Integer, nullable=False)

    sold_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False)

    voucher = db.relationship("VoucherInventory")
    voucher_type = db.relationship("VoucherType")
    retailer = db.relationship("Retailer", backref=db.backref("sales", lazy="dynamic"))
    terminal = db.relationship("Terminal", backref=db.backref("sales", lazy="dynamic"))
    agent = db.relationship("Agent")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ref_number": self.ref_number,
            "voucher_inventory_id": self.voucher_inventory_id,
            "voucher_type_id": self.voucher_type_id,
            "voucher_type_name": self.voucher_type.name if self.voucher_type else None,
            "retailer_id": self.retailer_id,
            "terminal_id": self.terminal_id,
            "terminal_name": self.terminal.name if self.terminal else None,
            "agent_id": self.agent_id,
            "sale_amount_cents": self.sale_amount_cents,
            "retailer_commission_pct": str(self.retailer_commission_pct),
            "agent_commission_pct": str(self.agent_commission_pct),
            "retailer_commission_cents": self.retailer_commission_cents,
            "agent_commission_cents": self.agent_commission_cents,
            "from_balance_cents": self.from_balance_cents,
            "from_credit_cents": self.from_credit_cents,
            "serial_number": self.voucher.serial_number if self.voucher else None,
            "created_at": to_utc_z(self.created_at),
        }


class RetailerTransaction(db.Model):
    """
    Append-only ledger of retailer account movements.

    TRANSACTION TYPES:
    - sale: voucher sale (amount negative, funded from balance and/or credit)
    - deposit: funds loaded onto the balance
    - adjustment: manual correction by an admin (positive or negative)
    - credit_limit: credit limit change (amount = new limit - old limit)

    IMMUTABLE: Records are never updated or deleted.
    """
    __tablename__ = "retailer_transactions"
    __table_args__ = (
        db.Index("ix_retailer_txns_retailer_occurred", "retailer_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    retailer_id = db.Column(db.Integer, db.ForeignKey("retailers.id"), nullable=False, index=True)
    transaction_type = db.Column(db.String(16), nullable=False, index=True)

    amount_cents = db.Column(db.Integer, nullable=False)
    balance_after_cents = db.Column(db.Integer, nullable=False)
    credit_used_after_cents = db.Column(db.Integer, nullable=False)
    commission_balance_after_cents = db.Column(db.Integer, nullable=False)

    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)
    agent_id = db.Column(db.Integer, db.ForeignKey("agents.id"), nullable=True)
    actor_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    note = db.Column(db.String(255), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    retailer = db.relationship("Retailer", backref=db.backref("transactions", lazy="dynamic"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "retailer_id": self.retailer_id,
            "transaction_type": self.transaction_type,
            "amount_cents": self.amount_cents,
            "balance_after_cents": self.balance_after_cents,
            "credit_used_after_cents": self.credit_used_after_cents,
            "commission_balance_after_cents": self.commission_balance_after_cents,
            "sale_id": self.sale_id,
            "agent_id": self.agent_id,
            "actor_user_id": self.actor_user_id,
            "note": self.note,
            "occurred_at": to_utc_z(self.occurred_at),
        }
