from .auth import User, SessionToken
from .accounts import Agent, Retailer, Terminal
from .vouchers import VoucherType, VoucherInventory
from .commissions import CommissionGroup, CommissionGroupRate
from .sales import Sale, RetailerTransaction

__all__ = [
    'User', 'SessionToken',
    'Agent', 'Retailer', 'Terminal',
    'VoucherType', 'VoucherInventory',
    'CommissionGroup', 'CommissionGroupRate',
    'Sale', 'RetailerTransaction',
]
