# Overview: Shared helpers for API routes: typed-error responses and request parsing.

from flask import jsonify, request

from ..errors import STATUS_BY_KIND, VoucherPosError, ValidationError
from ..extensions import db
from ..time_utils import parse_iso_datetime


def error_response(exc: VoucherPosError):
    """
    JSON body {"error", "kind", "details"} with the status for its kind.

    Rolls back the session so a half-done unit of work never leaks into the
    next request.
    """
    db.session.rollback()
    return jsonify(exc.to_dict()), STATUS_BY_KIND.get(exc.kind, 400)


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("JSON object body required")
    return data


def require_int(data: dict, key: str, *, positive: bool = True) -> int:
    value = data.get(key)
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be an integer")
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        value = int(value)
    if not isinstance(value, int):
        raise ValidationError(f"{key} required" if value is None else f"{key} must be an integer")
    if positive and value <= 0:
        raise ValidationError(f"{key} must be positive")
    return value


def optional_int(data: dict, key: str) -> int | None:
    if data.get(key) in (None, ""):
        return None
    return require_int(data, key)


def optional_datetime(key: str):
    try:
        return parse_iso_datetime(request.args.get(key))
    except ValueError:
        raise ValidationError(f"{key} must be an ISO-8601 datetime")


def limit_arg(default: int = 100, maximum: int = 500) -> int:
    limit = request.args.get("limit", default, type=int)
    return max(1, min(limit, maximum))
