# Overview: Clients for third-party voucher and bill-payment APIs.

from .base import VendorResult
from .ott import OttClient
from .glocell import GlocellClient

__all__ = ["VendorResult", "OttClient", "GlocellClient"]
