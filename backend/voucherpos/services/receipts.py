# Overview: Receipt projection for completed sales. Pure functions, no database writes.

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Optional

from voucherpos.time_utils import to_utc_z


DEFAULT_INSTRUCTIONS = "Dial *136*(voucher number)#"
WEBSITE_INSTRUCTIONS = "Visit provider website and enter code in 'Redeem Voucher' section"

# (substring of network/product name, redemption instructions); first match wins
NETWORK_INSTRUCTIONS = (
    ("vodacom", "Dial *135*(voucher number)#"),
    ("mtn", "Dial *136*(voucher number)#"),
    ("telkom", "Dial *180*(voucher number)#"),
    ("cell c", "Dial *102*(voucher number)#"),
    ("cellc", "Dial *102*(voucher number)#"),
    ("netflix", WEBSITE_INSTRUCTIONS),
    ("showmax", WEBSITE_INSTRUCTIONS),
)


@dataclass(frozen=True)
class SaleReceipt:
    """
    Read-only projection of a Sale plus voucher-type display metadata.

    Fields that the source records may not carry are Optional and come
    through as None rather than being omitted.
    """
    sale_id: int
    ref_number: str
    voucher_code: str
    serial_number: Optional[str]
    product_name: str
    network_provider: Optional[str]
    retailer_id: int
    retailer_name: Optional[str]
    terminal_id: int
    terminal_name: Optional[str]
    sale_amount_cents: int
    retailer_commission_cents: int
    agent_commission_cents: int
    timestamp: Optional[str]
    instructions: str
    help_text: Optional[str] = None
    balance_after_cents: Optional[int] = None
    credit_used_after_cents: Optional[int] = None
    commission_balance_after_cents: Optional[int] = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "SaleReceipt":
        """Tolerant parse: unknown keys are dropped, missing optional keys become None."""
        return cls(
            sale_id=data["sale_id"],
            ref_number=data.get("ref_number") or "",
            voucher_code=data.get("voucher_code") or "",
            serial_number=data.get("serial_number"),
            product_name=data.get("product_name") or "",
            network_provider=data.get("network_provider"),
            retailer_id=data.get("retailer_id"),
            retailer_name=data.get("retailer_name"),
            terminal_id=data.get("terminal_id"),
            terminal_name=data.get("terminal_name"),
            sale_amount_cents=data.get("sale_amount_cents") or 0,
            retailer_commission_cents=data.get("retailer_commission_cents") or 0,
            agent_commission_cents=data.get("agent_commission_cents") or 0,
            timestamp=data.get("timestamp"),
            instructions=data.get("instructions") or DEFAULT_INSTRUCTIONS,
            help_text=data.get("help_text"),
            balance_after_cents=data.get("balance_after_cents"),
            credit_used_after_cents=data.get("credit_used_after_cents"),
            commission_balance_after_cents=data.get("commission_balance_after_cents"),
        )


def redemption_instructions(product_name: str | None, network_provider: str | None = None,
                            configured: str | None = None) -> str:
    if configured and configured.strip():
        return configured.strip()

    haystack = " ".join(part for part in (network_provider, product_name) if part).lower()
    for needle, instructions in NETWORK_INSTRUCTIONS:
        if needle in haystack:
            return instructions
    return DEFAULT_INSTRUCTIONS


def build_receipt(sale, include_balances: bool = False) -> SaleReceipt:
    """Project a Sale (with its relationships loaded) into a receipt."""
    voucher_type = sale.voucher_type
    retailer = sale.retailer
    terminal = sale.terminal
    unit = sale.voucher

    product_name = voucher_type.name if voucher_type else ""
    network = voucher_type.network_provider if voucher_type else None

    return SaleReceipt(
        sale_id=sale.id,
        ref_number=sale.ref_number,
        voucher_code=unit.pin if unit else "",
        serial_number=unit.serial_number if unit else None,
        product_name=product_name,
        network_provider=network,
        retailer_id=sale.retailer_id,
        retailer_name=retailer.name if retailer else None,
        terminal_id=sale.terminal_id,
        terminal_name=terminal.name if terminal else None,
        sale_amount_cents=sale.sale_amount_cents,
        retailer_commission_cents=sale.retailer_commission_cents,
        agent_commission_cents=sale.agent_commission_cents,
        timestamp=to_utc_z(sale.created_at),
        instructions=redemption_instructions(
            product_name, network, voucher_type.instructions if voucher_type else None
        ),
        help_text=voucher_type.help_text if voucher_type else None,
        balance_after_cents=retailer.balance_cents if include_balances and retailer else None,
        credit_used_after_cents=retailer.credit_used_cents if include_balances and retailer else None,
        commission_balance_after_cents=(
            retailer.commission_balance_cents if include_balances and retailer else None
        ),
    )
