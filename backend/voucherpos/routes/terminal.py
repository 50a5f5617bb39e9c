# Overview: Flask API routes for the cashier terminal; lookups, pre-flight checks and the sale call.

# backend/voucherpos/routes/terminal.py
"""
Terminal API routes

Read endpoints (categories, inventory, commission, funds) have no write side
effects. POST /sales is the only mutating call: commission is re-quoted on
the server and the atomic executor runs once. Nothing here retries a sale.

Available to: cashier (bound terminal), retailer (any of its active terminals,
select with terminal_id).
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import VoucherPosError, NotFoundError
from ..models.auth import ROLE_CASHIER, ROLE_RETAILER
from ..services import account_service, commission_service, inventory_service, sales_service
from ..services.funds_service import validate_retailer_funds
from ..services.receipts import build_receipt
from ..decorators import require_auth, require_role
from .common import error_response, json_body, limit_arg, optional_datetime, optional_int, require_int


terminal_bp = Blueprint("terminal", __name__, url_prefix="/api/terminal")


def _current_terminal(data=None):
    source = data if data is not None else request.args
    return account_service.resolve_terminal(g.current_user, optional_int(source, "terminal_id"))


@terminal_bp.get("/profile")
@require_auth
@require_role(ROLE_CASHIER, ROLE_RETAILER)
def profile_route():
    try:
        terminal = _current_terminal()
        return jsonify({
            "user": g.current_user.to_dict(),
            "terminal": terminal.to_dict(),
            "retailer": terminal.retailer.to_dict(),
            "terminals": [t.to_dict() for t in account_service.terminals_for_user(g.current_user)],
        })
    except VoucherPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load terminal profile")
        return jsonify({"error": "Internal server error"}), 500


@terminal_bp.get("/categories")
@require_auth
@require_role(ROLE_CASHIER, ROLE_RETAILER)
def categories_route():
    try:
        category = request.args.get("category")
        payload = {"categories": inventory_service.list_categories()}
        if category:
            payload["networks"] = inventory_service.list_networks(category)
        return jsonify(payload)
    except VoucherPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list categories")
        return jsonify({"error": "Internal server error"}), 500


@terminal_bp.get("/inventory")
@require_auth
@require_role(ROLE_CASHIER, ROLE_RETAILER)
def inventory_route():
    """
    Available denominations for a category.

    Query params: category (required), network_provider, sub_category
    """
    try:
        items = inventory_service.list_available(
            request.args.get("category"),
            network_provider=request.args.get("network_provider"),
            sub_category=request.args.get("sub_category"),
        )
        return jsonify({"items": [item.to_dict() for item in items], "count": len(items)})
    except VoucherPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to look up inventory")
        return jsonify({"error": "Internal server error"}), 500


@terminal_bp.get("/commission")
@require_auth
@require_role(ROLE_CASHIER, ROLE_RETAILER)
def commission_route():
    """Commission quote. 422 RateNotConfigured blocks the sale."""
    try:
        terminal = _current_terminal()
        quote = commission_service.compute_commission(
            terminal.retailer_id,
            require_int(request.args, "voucher_type_id"),
            require_int(request.args, "amount_cents"),
        )
        return jsonify({"quote": quote.to_dict()})
    except VoucherPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to compute commission")
        return jsonify({"error": "Internal server error"}), 500


@terminal_bp.get("/funds")
@require_auth
@require_role(ROLE_CASHIER, ROLE_RETAILER)
def funds_route():
    """Pre-flight funds check against a fresh retailer snapshot."""
    try:
        terminal = _current_terminal()
        retailer = terminal.retailer
        funds = validate_retailer_funds(retailer, require_int(request.args, "amount_cents"))
        return jsonify({"funds": funds.to_dict(), "retailer": retailer.to_dict()})
    except VoucherPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to check funds")
        return jsonify({"error": "Internal server error"}), 500


@terminal_bp.post("/sales")
@require_auth
@require_role(ROLE_CASHIER, ROLE_RETAILER)
def create_sale_route():
    """
    Sell one voucher.

    Body: voucher_type_id, amount_cents, inventory_unit_id (optional; lowest
    available unit if omitted), terminal_id (retailer users with several
    terminals).
    """
    try:
        data = json_body()
        terminal = _current_terminal(data)
        receipt = sales_service.sell_from_terminal(
            terminal,
            voucher_type_id=require_int(data, "voucher_type_id"),
            amount_cents=require_int(data, "amount_cents"),
            inventory_unit_id=optional_int(data, "inventory_unit_id"),
            actor_user_id=g.current_user.id,
        )
        current_app.logger.info(
            "Voucher sale %s completed on terminal %s (%s cents)",
            receipt.ref_number, terminal.id, receipt.sale_amount_cents,
        )
        return jsonify({"receipt": receipt.to_dict()}), 201
    except VoucherPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to complete voucher sale")
        return jsonify({"error": "Internal server error"}), 500


@terminal_bp.get("/sales")
@require_auth
@require_role(ROLE_CASHIER, ROLE_RETAILER)
def sale_history_route():
    """
    Sales for the terminal, newest first.

    Check this before re-selling after an Indeterminate outcome.
    Query params: start, end (ISO-8601), limit
    """
    try:
        terminal = _current_terminal()
        sales = sales_service.sale_history(
            terminal_id=terminal.id,
            start=optional_datetime("start"),
            end=optional_datetime("end"),
            limit=limit_arg(),
        )
        return jsonify({"sales": [sale.to_dict() for sale in sales], "count": len(sales)})
    except VoucherPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load sale history")
        return jsonify({"error": "Internal server error"}), 500


@terminal_bp.get("/sales/<int:sale_id>/receipt")
@require_auth
@require_role(ROLE_CASHIER, ROLE_RETAILER)
def receipt_route(sale_id: int):
    try:
        terminal = _current_terminal()
        sale = sales_service.get_sale(sale_id)
        if sale.retailer_id != terminal.retailer_id:
            raise NotFoundError("Sale not found")
        return jsonify({"receipt": build_receipt(sale).to_dict()})
    except VoucherPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to build receipt")
        return jsonify({"error": "Internal server error"}), 500
