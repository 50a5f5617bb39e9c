# Overview: Flask API routes for the retailer portal; read-only account views.

from flask import Blueprint, jsonify, g, current_app

from ..errors import VoucherPosError
from ..models.auth import ROLE_RETAILER
from ..services import account_service, ledger_service, sales_service
from ..decorators import require_auth, require_role
from .common import error_response, limit_arg, optional_datetime


retailer_bp = Blueprint("retailer", __name__, url_prefix="/api/retailer")


@retailer_bp.get("/account")
@require_auth
@require_role(ROLE_RETAILER)
def account_route():
    try:
        retailer = account_service.get_retailer(g.current_user.retailer_id)
        payload = retailer.to_dict()
        payload["commission_group_name"] = retailer.commission_group.name if retailer.commission_group else None
        return jsonify({"retailer": payload})
    except VoucherPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load retailer account")
        return jsonify({"error": "Internal server error"}), 500


@retailer_bp.get("/terminals")
@require_auth
@require_role(ROLE_RETAILER)
def terminals_route():
    try:
        retailer = account_service.get_retailer(g.current_user.retailer_id)
        return jsonify({"terminals": [t.to_dict() for t in retailer.terminals]})
    except VoucherPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list terminals")
        return jsonify({"error": "Internal server error"}), 500


@retailer_bp.get("/transactions")
@require_auth
@require_role(ROLE_RETAILER)
def transactions_route():
    try:
        txns = ledger_service.list_transactions(g.current_user.retailer_id, limit=limit_arg())
        return jsonify({"transactions": [t.to_dict() for t in txns], "count": len(txns)})
    except VoucherPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list retailer transactions")
        return jsonify({"error": "Internal server error"}), 500


@retailer_bp.get("/sales")
@require_auth
@require_role(ROLE_RETAILER)
def sales_route():
    try:
        sales = sales_service.sale_history(
            retailer_id=g.current_user.retailer_id,
            start=optional_datetime("start"),
            end=optional_datetime("end"),
            limit=limit_arg(),
        )
        return jsonify({"sales": [s.to_dict() for s in sales], "count": len(sales)})
    except VoucherPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list retailer sales")
        return jsonify({"error": "Internal server error"}), 500
