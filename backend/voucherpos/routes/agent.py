# Overview: Flask API routes for the agent portal; retailers, commission earned on them and statements.

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import VoucherPosError
from ..models.auth import ROLE_AGENT
from ..services import account_service, reporting_service
from ..decorators import require_auth, require_role
from .common import error_response, limit_arg


agent_bp = Blueprint("agent", __name__, url_prefix="/api/agent")


@agent_bp.get("/retailers")
@require_auth
@require_role(ROLE_AGENT)
def retailers_route():
    try:
        retailers = account_service.list_retailers(agent_id=g.current_user.agent_id)
        return jsonify({"retailers": [r.to_dict() for r in retailers], "count": len(retailers)})
    except VoucherPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list agent retailers")
        return jsonify({"error": "Internal server error"}), 500


@agent_bp.get("/commissions")
@require_auth
@require_role(ROLE_AGENT)
def commissions_route():
    try:
        return jsonify(account_service.agent_commission_summary(g.current_user.agent_id))
    except VoucherPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load agent commissions")
        return jsonify({"error": "Internal server error"}), 500


@agent_bp.get("/summary")
@require_auth
@require_role(ROLE_AGENT)
def summary_route():
    try:
        return jsonify(reporting_service.agent_summary(g.current_user.agent_id))
    except VoucherPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load agent summary")
        return jsonify({"error": "Internal server error"}), 500


@agent_bp.get("/statements")
@require_auth
@require_role(ROLE_AGENT)
def statements_route():
    """Query params: start, end (ISO-8601), limit"""
    try:
        return jsonify(reporting_service.agent_statements(
            g.current_user.agent_id,
            start=request.args.get("start"),
            end=request.args.get("end"),
            limit=limit_arg(default=500, maximum=5000),
        ))
    except VoucherPosError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load agent statements")
        return jsonify({"error": "Internal server error"}), 500
