# Overview: Flask API routes for third-party vendor calls (OTT vouchers, Glocell bill payments).

"""
Vendor API routes

Thin pass-through: the terminal never sees vendor credentials. Vendor
failures come back as 502 with kind VendorError; the vendor's own message is
passed on when it sent one. Vendor calls are never retried here.
"""

from flask import Blueprint, jsonify, g, current_app

from ..errors import VoucherPosError
from ..models.auth import ROLE_ADMIN, ROLE_CASHIER, ROLE_RETAILER
from ..services import account_service
from ..vendors import OttClient, GlocellClient
from ..decorators import require_auth, require_role
from .common import error_response, json_body, optional_int, require_int


vendors_bp = Blueprint("vendors", __name__, url_prefix="/api/vendors")


def _transport():
    # Tests swap in an httpx.MockTransport here
    return current_app.config.get("VENDOR_HTTP_TRANSPORT")


@vendors_bp.post("/ott/vouchers")
@require_auth
@require_role(ROLE_CASHIER, ROLE_RETAILER)
def ott_voucher_route():
    """Body: amount_cents, mobile_for_sms (optional), terminal_id (optional)"""
    try:
        data = json_body()
        terminal = account_service.resolve_terminal(g.current_user, optional_int(data, "terminal_id"))
        amount_cents = require_int(data, "amount_cents")
        with OttClient.from_config(current_app.config, transport=_transport()) as client:
            result = client.get_voucher(
                amount_cents,
                cashier=g.current_user.username,
                till=terminal.name,
                branch=terminal.retailer.name,
                mobile_for_sms=data.get("mobile_for_sms") or "",
            )
        return jsonify({"result": result.to_dict()}), 201
    except VoucherPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to issue OTT voucher")
        return jsonify({"error": "Internal server error"}), 500


@vendors_bp.get("/ott/balance")
@require_auth
@require_role(ROLE_ADMIN)
def ott_balance_route():
    try:
        with OttClient.from_config(current_app.config, transport=_transport()) as client:
            result = client.get_balance()
        return jsonify({"result": result.to_dict()})
    except VoucherPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to fetch OTT balance")
        return jsonify({"error": "Internal server error"}), 500


@vendors_bp.post("/electricity/confirm")
@require_auth
@require_role(ROLE_CASHIER, ROLE_RETAILER)
def electricity_confirm_route():
    """Body: meter_number, amount_cents"""
    try:
        data = json_body()
        with GlocellClient.from_config(current_app.config, transport=_transport()) as client:
            result = client.confirm_customer(data.get("meter_number"), require_int(data, "amount_cents"))
        return jsonify({"result": result.to_dict()})
    except VoucherPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to confirm electricity customer")
        return jsonify({"error": "Internal server error"}), 500


@vendors_bp.post("/electricity/vend")
@require_auth
@require_role(ROLE_CASHIER, ROLE_RETAILER)
def electricity_vend_route():
    """Body: reference (from confirm), meter_number"""
    try:
        data = json_body()
        with GlocellClient.from_config(current_app.config, transport=_transport()) as client:
            result = client.vend_electricity(data.get("reference"), data.get("meter_number"))
        return jsonify({"result": result.to_dict()}), 201
    except VoucherPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to vend electricity")
        return jsonify({"error": "Internal server error"}), 500


@vendors_bp.post("/dstv/pay")
@require_auth
@require_role(ROLE_CASHIER, ROLE_RETAILER)
def dstv_pay_route():
    """Body: reference, account_number, product_id, amount_cents, vendor_id (optional)"""
    try:
        data = json_body()
        with GlocellClient.from_config(current_app.config, transport=_transport()) as client:
            result = client.pay_dstv(
                reference=data.get("reference"),
                account_number=data.get("account_number"),
                product_id=data.get("product_id"),
                amount_cents=require_int(data, "amount_cents"),
                vendor_id=data.get("vendor_id"),
            )
        return jsonify({"result": result.to_dict()}), 201
    except VoucherPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to process DStv payment")
        return jsonify({"error": "Internal server error"}), 500
