# Overview: Flask API routes for admin operations; parses input and returns JSON responses.

# backend/voucherpos/routes/admin.py
"""
Admin routes for the platform operator.

Provides endpoints for:
- Retailer accounts (create, status, deposits, adjustments, credit limit)
- Terminals and cashier logins
- Agents and portal users
- Commission groups and rates
- Voucher types and stock loading
- Sales, earnings and inventory reports

All endpoints require an authenticated admin.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import VoucherPosError, ValidationError
from ..extensions import db
from ..models import Agent, VoucherType
from ..models.auth import ROLE_ADMIN
from ..services import (
    account_service,
    auth_service,
    commission_service,
    inventory_service,
    ledger_service,
    reporting_service,
    sales_service,
)
from ..decorators import require_auth, require_role
from .common import error_response, json_body, limit_arg, optional_datetime, optional_int, require_int

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


def _rounds() -> int:
    return current_app.config.get("BCRYPT_ROUNDS", 12)


# =============================================================================
# RETAILERS
# =============================================================================

@admin_bp.get("/retailers")
@require_auth
@require_role(ROLE_ADMIN)
def list_retailers_route():
    """
    Query params:
    - agent_id: int
    - status: active | suspended
    """
    retailers = account_service.list_retailers(
        agent_id=request.args.get("agent_id", type=int),
        status=request.args.get("status"),
    )
    return jsonify({"retailers": [r.to_dict() for r in retailers], "count": len(retailers)})


@admin_bp.post("/retailers")
@require_auth
@require_role(ROLE_ADMIN)
def create_retailer_route():
    try:
        data = json_body()
        retailer = account_service.create_retailer(
            data.get("name"),
            contact_name=data.get("contact_name"),
            contact_email=data.get("contact_email"),
            location=data.get("location"),
            credit_limit_cents=data.get("credit_limit_cents", 0),
            commission_group_id=optional_int(data, "commission_group_id"),
            agent_id=optional_int(data, "agent_id"),
        )
        return jsonify({"retailer": retailer.to_dict()}), 201
    except VoucherPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create retailer")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.get("/retailers/<int:retailer_id>")
@require_auth
@require_role(ROLE_ADMIN)
def get_retailer_route(retailer_id: int):
    try:
        retailer = account_service.get_retailer(retailer_id)
        return jsonify({
            "retailer": retailer.to_dict(),
            "terminals": [t.to_dict() for t in retailer.terminals],
        })
    except VoucherPosError as e:
        return error_response(e)


@admin_bp.post("/retailers/<int:retailer_id>/status")
@require_auth
@require_role(ROLE_ADMIN)
def set_status_route(retailer_id: int):
    try:
        data = json_body()
        retailer = account_service.set_retailer_status(retailer_id, data.get("status"))
        return jsonify({"retailer": retailer.to_dict()})
    except VoucherPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update retailer status")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.post("/retailers/<int:retailer_id>/deposit")
@require_auth
@require_role(ROLE_ADMIN)
def deposit_route(retailer_id: int):
    try:
        data = json_body()
        retailer = ledger_service.deposit(
            retailer_id,
            require_int(data, "amount_cents"),
            actor_user_id=g.current_user.id,
            note=data.get("note"),
        )
        return jsonify({"retailer": retailer.to_dict()})
    except VoucherPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record deposit")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.post("/retailers/<int:retailer_id>/adjust")
@require_auth
@require_role(ROLE_ADMIN)
def adjust_route(retailer_id: int):
    try:
        data = json_body()
        retailer = ledger_service.adjust_balance(
            retailer_id,
            require_int(data, "delta_cents", positive=False),
            actor_user_id=g.current_user.id,
            reason=data.get("reason"),
        )
        return jsonify({"retailer": retailer.to_dict()})
    except VoucherPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to adjust balance")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.post("/retailers/<int:retailer_id>/credit-limit")
@require_auth
@require_role(ROLE_ADMIN)
def credit_limit_route(retailer_id: int):
    try:
        data = json_body()
        retailer = ledger_service.set_credit_limit(
            retailer_id,
            require_int(data, "credit_limit_cents", positive=False),
            actor_user_id=g.current_user.id,
        )
        return jsonify({"retailer": retailer.to_dict()})
    except VoucherPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to set credit limit")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.post("/retailers/<int:retailer_id>/commission-group")
@require_auth
@require_role(ROLE_ADMIN)
def assign_group_route(retailer_id: int):
    try:
        data = json_body()
        retailer = commission_service.assign_group(retailer_id, require_int(data, "commission_group_id"))
        return jsonify({"retailer": retailer.to_dict()})
    except VoucherPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to assign commission group")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.post("/retailers/<int:retailer_id>/agent")
@require_auth
@require_role(ROLE_ADMIN)
def assign_agent_route(retailer_id: int):
    try:
        data = json_body()
        retailer = account_service.assign_agent(retailer_id, optional_int(data, "agent_id"))
        return jsonify({"retailer": retailer.to_dict()})
    except VoucherPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to assign agent")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.get("/retailers/<int:retailer_id>/transactions")
@require_auth
@require_role(ROLE_ADMIN)
def retailer_transactions_route(retailer_id: int):
    txns = ledger_service.list_transactions(retailer_id, limit=limit_arg())
    return jsonify({"transactions": [t.to_dict() for t in txns], "count": len(txns)})


# =============================================================================
# TERMINALS & USERS
# =============================================================================

@admin_bp.post("/retailers/<int:retailer_id>/terminals")
@require_auth
@require_role(ROLE_ADMIN)
def create_terminal_route(retailer_id: int):
    try:
        data = json_body()
        terminal = account_service.create_terminal(retailer_id, data.get("name"))
        return jsonify({"terminal": terminal.to_dict()}), 201
    except VoucherPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create terminal")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.post("/terminals/<int:terminal_id>/active")
@require_auth
@require_role(ROLE_ADMIN)
def terminal_active_route(terminal_id: int):
    try:
        data = json_body()
        if not isinstance(data.get("is_active"), bool):
            raise ValidationError("is_active must be true or false")
        terminal = account_service.set_terminal_active(terminal_id, data["is_active"])
        return jsonify({"terminal": terminal.to_dict()})
    except VoucherPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update terminal")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.post("/terminals/<int:terminal_id>/cashier")
@require_auth
@require_role(ROLE_ADMIN)
def create_cashier_route(terminal_id: int):
    """Create a cashier login bound to the terminal."""
    try:
        data = json_body()
        user = account_service.create_cashier(
            terminal_id,
            username=data.get("username"),
            email=data.get("email"),
            password=data.get("password") or "",
            rounds=_rounds(),
        )
        return jsonify({"user": user.to_dict()}), 201
    except VoucherPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create cashier")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.post("/users")
@require_auth
@require_role(ROLE_ADMIN)
def create_user_route():
    """
    Create an admin, retailer or agent login.

    Body: username, email, password, role, retailer_id / agent_id
    """
    try:
        data = json_body()
        user = auth_service.create_user(
            username=data.get("username"),
            email=data.get("email"),
            password=data.get("password") or "",
            role=data.get("role"),
            retailer_id=optional_int(data, "retailer_id"),
            agent_id=optional_int(data, "agent_id"),
            rounds=_rounds(),
        )
        return jsonify({"user": user.to_dict()}), 201
    except VoucherPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.get("/agents")
@require_auth
@require_role(ROLE_ADMIN)
def list_agents_route():
    agents = db.session.query(Agent).order_by(Agent.name).all()
    return jsonify({"agents": [a.to_dict() for a in agents], "count": len(agents)})


@admin_bp.post("/agents")
@require_auth
@require_role(ROLE_ADMIN)
def create_agent_route():
    try:
        agent = account_service.create_agent(json_body().get("name"))
        return jsonify({"agent": agent.to_dict()}), 201
    except VoucherPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create agent")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# COMMISSION GROUPS
# =============================================================================

@admin_bp.get("/commission-groups")
@require_auth
@require_role(ROLE_ADMIN)
def list_groups_route():
    groups = commission_service.list_groups()
    return jsonify({"groups": [grp.to_dict(include_rates=True) for grp in groups]})


@admin_bp.post("/commission-groups")
@require_auth
@require_role(ROLE_ADMIN)
def create_group_route():
    try:
        data = json_body()
        group = commission_service.create_group(data.get("name"), data.get("description"))
        return jsonify({"group": group.to_dict()}), 201
    except VoucherPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create commission group")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.put("/commission-groups/<int:group_id>/rates")
@require_auth
@require_role(ROLE_ADMIN)
def upsert_rate_route(group_id: int):
    """Body: voucher_type_id, retailer_pct, agent_pct (percentages as strings or numbers)."""
    try:
        data = json_body()
        if data.get("retailer_pct") is None:
            raise ValidationError("retailer_pct required")
        rate = commission_service.upsert_rate(
            group_id,
            require_int(data, "voucher_type_id"),
            data["retailer_pct"],
            data.get("agent_pct", 0),
        )
        return jsonify({"rate": rate.to_dict()})
    except VoucherPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to save commission rate")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# VOUCHER TYPES & STOCK
# =============================================================================

@admin_bp.get("/voucher-types")
@require_auth
@require_role(ROLE_ADMIN)
def list_voucher_types_route():
    types = db.session.query(VoucherType).order_by(VoucherType.category, VoucherType.name).all()
    return jsonify({"voucher_types": [t.to_dict() for t in types]})


@admin_bp.post("/voucher-types")
@require_auth
@require_role(ROLE_ADMIN)
def create_voucher_type_route():
    try:
        data = json_body()
        voucher_type = inventory_service.create_voucher_type(
            name=data.get("name"),
            category=data.get("category"),
            network_provider=data.get("network_provider"),
            sub_category=data.get("sub_category"),
            instructions=data.get("instructions"),
            help_text=data.get("help_text"),
        )
        return jsonify({"voucher_type": voucher_type.to_dict()}), 201
    except VoucherPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create voucher type")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.post("/voucher-types/<int:voucher_type_id>/inventory")
@require_auth
@require_role(ROLE_ADMIN)
def load_inventory_route(voucher_type_id: int):
    """Body: {"units": [{"amount_cents", "pin", "serial_number", "expiry_date"}, ...]}"""
    try:
        units = json_body().get("units")
        if not isinstance(units, list):
            raise ValidationError("units must be a list")
        count = inventory_service.add_inventory_units(voucher_type_id, units)
        return jsonify({"loaded": count}), 201
    except VoucherPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load voucher inventory")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.get("/voucher-types/<int:voucher_type_id>/inventory")
@require_auth
@require_role(ROLE_ADMIN)
def inventory_summary_route(voucher_type_id: int):
    try:
        return jsonify(inventory_service.inventory_summary(voucher_type_id))
    except VoucherPosError as e:
        return error_response(e)


@admin_bp.get("/sales")
@require_auth
@require_role(ROLE_ADMIN)
def list_sales_route():
    """Query params: retailer_id, terminal_id, agent_id, start, end, limit"""
    try:
        sales = sales_service.sale_history(
            retailer_id=request.args.get("retailer_id", type=int),
            terminal_id=request.args.get("terminal_id", type=int),
            agent_id=request.args.get("agent_id", type=int),
            start=optional_datetime("start"),
            end=optional_datetime("end"),
            limit=limit_arg(),
        )
        return jsonify({"sales": [s.to_dict() for s in sales], "count": len(sales)})
    except VoucherPosError as e:
        return error_response(e)


# =============================================================================
# REPORTS
# =============================================================================

@admin_bp.get("/reports/sales")
@require_auth
@require_role(ROLE_ADMIN)
def sales_report_route():
    """Query params: start, end (ISO-8601), retailer_id, limit"""
    try:
        report = reporting_service.sales_report(
            start=request.args.get("start"),
            end=request.args.get("end"),
            retailer_id=request.args.get("retailer_id", type=int),
            limit=limit_arg(default=500, maximum=5000),
        )
        return jsonify(report)
    except VoucherPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to build sales report")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.get("/reports/earnings")
@require_auth
@require_role(ROLE_ADMIN)
def earnings_report_route():
    """Query params: start, end (ISO-8601)"""
    try:
        return jsonify(reporting_service.earnings_summary(
            start=request.args.get("start"),
            end=request.args.get("end"),
        ))
    except VoucherPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to build earnings summary")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.get("/reports/inventory")
@require_auth
@require_role(ROLE_ADMIN)
def inventory_report_route():
    try:
        return jsonify(reporting_service.inventory_report())
    except Exception:
        current_app.logger.exception("Failed to build inventory report")
        return jsonify({"error": "Internal server error"}), 500
