import time
from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify, request
from werkzeug.exceptions import BadRequest

from services import ErrorKind


other_api_bp = Blueprint("other", __name__)

STARTED_AT = time.monotonic()

ENDPOINTS = {
    "health": "/health",
    "users": "/api/users",
    "movies": "/api/movies",
    "watchlist": "/api/watchlist",
    "admin": "/api/admin",
}

ERROR_STATUS = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.UNAVAILABLE: 500,
}


@other_api_bp.route("/", methods=["GET"])
def api_root():
    return jsonify(
        {"message": "CriticScore API", "version": "1.0.0", "endpoints": ENDPOINTS}
    ), 200


@other_api_bp.route("/health", methods=["GET"])
def health_check():
    return jsonify(
        {
            "status": "OK",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": round(time.monotonic() - STARTED_AT, 3),
        }
    ), 200


# =================================
#         Helper Functions
# =================================


def error_response(result):
    """Maps a failed ServiceResult onto the {"error": ...} body and status."""
    return jsonify({"error": result.error}), ERROR_STATUS.get(result.kind, 500)


def message_response(result, message, status=200):
    if not result.success:
        return error_response(result)
    body = {"message": message}
    if result.data is not None:
        body["data"] = result.data
    return jsonify(body), status


def positive_int_arg(name, default):
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise BadRequest(f"{name} must be an integer")
    if value < 1:
        raise BadRequest(f"{name} must be at least 1")
    return value


def pagination_args(default_sort_by, default_sort_order="desc"):
    """
    Reads page/limit/sortBy/sortOrder from the query string as keyword
    arguments for the list services. limit is clamped to MAX_PAGE_SIZE.
    """
    limit = positive_int_arg("limit", current_app.config["DEFAULT_PAGE_SIZE"])
    return {
        "page": positive_int_arg("page", 1),
        "limit": min(limit, current_app.config["MAX_PAGE_SIZE"]),
        "sort_by": request.args.get("sortBy") or default_sort_by,
        "sort_order": (request.args.get("sortOrder") or default_sort_order).lower(),
    }


def flag_arg(name):
    return request.args.get(name, "").lower() == "true"


def json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise BadRequest("Request body must be a JSON object")
    return data
