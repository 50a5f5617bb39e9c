from __future__ import annotations

from ..extensions import db
from voucherpos.time_utils import to_utc_z


UNIT_AVAILABLE = "available"
UNIT_SOLD = "sold"


class VoucherType(db.Model):
    """
    Voucher category metadata (e.g. "MTN Airtime", "Vodacom Data 1GB 30 days").

    category: airtime | data | ott | ... (free text, lower-cased)
    sub_category: duration bucket for data bundles (daily, weekly, monthly)
    instructions/help_text: printed on receipts
    """
    __tablename__ = "voucher_types"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_voucher_types_name"),
        db.Index("ix_voucher_types_category_network", "category", "network_provider"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    network_provider = db.Column(db.String(64), nullable=True, index=True)
    category = db.Column(db.String(64), nullable=False, index=True)
    sub_category = db.Column(db.String(64), nullable=True)

    instructions = db.Column(db.Text, nullable=True)
    help_text = db.Column(db.Text, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "network_provider": self.network_provider,
            "category": self.category,
            "sub_category": self.sub_category,
            "instructions": self.instructions,
            "help_text": self.help_text,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class VoucherInventory(db.Model):
    """
    One sellable voucher unit (single-use PIN).

    LIFECYCLE: available -> sold. Only the sale executor flips the status
    (compare-and-swap on status), and sold units are never modified or
    deleted afterwards.
    """
    __tablename__ = "voucher_inventory"
    __table_args__ = (
        db.UniqueConstraint("voucher_type_id", "pin", name="uq_voucher_inventory_type_pin"),
        db.Index("ix_voucher_inventory_type_status_amount", "voucher_type_id", "status", "amount_cents"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    voucher_type_id = db.Column(db.Integer, db.ForeignKey("voucher_types.id"), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)

    pin = db.Column(db.String(64), nullable=False)
    serial_number = db.Column(db.String(64), nullable=True)
    expiry_date = db.Column(db.Date, nullable=True)

    status = db.Column(db.String(16), nullable=False, default=UNIT_AVAILABLE, index=True)
    sold_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    voucher_type = db.relationship("VoucherType", backref=db.backref("units", lazy="dynamic"))

    @property
    def is_sold(self) -> bool:
        return self.status == UNIT_SOLD

    def to_dict(self, include_pin: bool = False) -> dict:
        data = {
            "id": self.id,
            "voucher_type_id": self.voucher_type_id,
            "amount_cents": self.amount_cents,
            "serial_number": self.serial_number,
            "expiry_date": self.expiry_date.isoformat() if self.expiry_date else None,
            "status": self.status,
            "sold_at": to_utc_z(self.sold_at) if self.sold_at else None,
            "created_at": to_utc_z(self.created_at),
        }
        if include_pin:
            data["pin"] = self.pin
        return data
