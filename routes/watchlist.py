from flask import Blueprint, jsonify
from flask_login import current_user

from auth import require_login
from routes import error_response, json_body, message_response
from services import watchlist_service


watchlist_api_bp = Blueprint("watchlist", __name__)

# Every watchlist endpoint is scoped to the authenticated caller
watchlist_api_bp.before_request(require_login)


# =================================
#        Watchlist Endpoints
# =================================


@watchlist_api_bp.route("/add", methods=["POST"])
def add_to_watchlist():
    movie_id = json_body().get("movieId")
    if movie_id is None or str(movie_id).strip() == "":
        return jsonify({"error": "Movie ID is required"}), 400

    result = watchlist_service.add_to_watchlist(current_user.id, str(movie_id).strip())
    return message_response(result, "Movie added to watchlist", 201)


@watchlist_api_bp.route("", methods=["GET"])
def get_user_watchlist():
    result = watchlist_service.get_user_watchlist(current_user.id)
    if not result.success:
        return error_response(result)
    return jsonify(result.data), 200


@watchlist_api_bp.route("", methods=["DELETE"])
def clear_watchlist():
    result = watchlist_service.clear_user_watchlist(current_user.id)
    return message_response(result, "Watchlist cleared successfully")


@watchlist_api_bp.route("/check/<movie_id>", methods=["GET"])
def check_watchlist_status(movie_id):
    result = watchlist_service.is_in_watchlist(current_user.id, movie_id)
    if not result.success:
        return error_response(result)
    return jsonify(result.data), 200


@watchlist_api_bp.route("/<movie_id>", methods=["DELETE"])
def remove_from_watchlist(movie_id):
    result = watchlist_service.remove_from_watchlist(current_user.id, movie_id)
    return message_response(result, "Movie removed from watchlist")
