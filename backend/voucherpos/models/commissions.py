from __future__ import annotations

from ..extensions import db


class CommissionGroup(db.Model):
    """Named rate table. Each retailer is assigned exactly one group."""
    __tablename__ = "commission_groups"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_commission_groups_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    description = db.Column(db.String(255), nullable=True)

    def to_dict(self, include_rates: bool = False) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
        }
        if include_rates:
            data["rates"] = [rate.to_dict() for rate in self.rates]
        return data


class CommissionGroupRate(db.Model):
    """
    Per-voucher-type percentages within a group.

    retailer_pct / agent_pct are percentages of the sale amount (5.000 = 5%).
    """
    __tablename__ = "commission_group_rates"
    __table_args__ = (
        db.UniqueConstraint("commission_group_id", "voucher_type_id", name="uq_commission_rates_group_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    commission_group_id = db.Column(db.Integer, db.ForeignKey("commission_groups.id"), nullable=False, index=True)
    voucher_type_id = db.Column(db.Integer, db.ForeignKey("voucher_types.id"), nullable=False, index=True)

    retailer_pct = db.Column(db.Numeric(6, 3), nullable=False, default=0)
    agent_pct = db.Column(db.Numeric(6, 3), nullable=False, default=0)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    group = db.relationship("CommissionGroup", backref=db.backref("rates", lazy=True))
    voucher_type = db.relationship("VoucherType")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "commission_group_id": self.commission_group_id,
            "voucher_type_id": self.voucher_type_id,
            "voucher_type_name": self.voucher_type.name if self.voucher_type else None,
            "retailer_pct": str(self.retailer_pct),
            "agent_pct": str(self.agent_pct),
        }
