# backend/voucherpos/routes/system.py
"""
System health endpoint.

Reports database connectivity and a few counts useful when debugging a
deployment (retailers, sellable units, active sessions).
"""

import time
from flask import Blueprint, current_app, jsonify
from ..extensions import db
from ..models import Retailer, SessionToken, VoucherInventory
from ..models.vouchers import UNIT_AVAILABLE
from voucherpos.time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        retailer_count = db.session.query(Retailer).count()
        available_units = db.session.query(VoucherInventory).filter_by(status=UNIT_AVAILABLE).count()
        active_sessions = db.session.query(SessionToken).filter(
            SessionToken.is_revoked.is_(False),
            SessionToken.expires_at > utcnow(),
        ).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "retailers": retailer_count,
                "available_units": available_units,
                "active_sessions": active_sessions,
            }
        }
    except Exception:
        db.session.rollback()
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


@system_bp.get("/api/health")
def health():
    database = check_database_health()
    healthy = database["status"] == "healthy"
    return jsonify({
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": to_utc_z(utcnow()),
        "checks": {"database": database},
    }), 200 if healthy else 503
