from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user

from auth import require_admin
from routes import (
    error_response,
    flag_arg,
    json_body,
    message_response,
    pagination_args,
    positive_int_arg,
)
from services import movie_service, rating_service, user_service


admin_api_bp = Blueprint("admin", __name__)

# Every admin endpoint requires an authenticated admin
admin_api_bp.before_request(require_admin)


# =================================
#       User Management
# =================================


@admin_api_bp.route("/users", methods=["GET"])
def get_users():
    limit = min(
        positive_int_arg("limit", 10), current_app.config["MAX_PAGE_SIZE"]
    )
    offset = request.args.get("offset", type=int, default=0)
    if offset < 0:
        return jsonify({"error": "offset must not be negative"}), 400

    result = user_service.get_users(
        limit=limit,
        offset=offset,
        email_address=request.args.get("emailAddress") or None,
    )
    if not result.success:
        return error_response(result)

    return jsonify(
        {
            "users": result.data["users"],
            "totalCount": result.data["totalCount"],
            "pagination": {"limit": limit, "offset": offset},
        }
    ), 200


@admin_api_bp.route("/users/<user_id>/ban", methods=["PUT"])
def ban_user(user_id):
    banned = json_body().get("banned", True)
    if not isinstance(banned, bool):
        return jsonify({"error": "banned must be a boolean value"}), 400
    if banned and user_id == current_user.id:
        return jsonify({"error": "You cannot ban yourself"}), 400

    result = user_service.ban_user(user_id, banned)
    return message_response(
        result,
        "User banned successfully" if banned else "User unbanned successfully",
    )


@admin_api_bp.route("/users/<user_id>/admin", methods=["PUT"])
def set_user_admin_status(user_id):
    is_admin = json_body().get("isAdmin", True)
    if not isinstance(is_admin, bool):
        return jsonify({"error": "isAdmin must be a boolean value"}), 400

    result = user_service.set_user_admin_status(
        user_id, is_admin, promoted_by=current_user.id
    )
    return message_response(
        result,
        "User promoted to admin" if is_admin else "Admin privileges removed from user",
    )


@admin_api_bp.route("/users/<user_id>", methods=["DELETE"])
def delete_user(user_id):
    if user_id == current_user.id:
        return jsonify({"error": "You cannot delete your own account here"}), 400

    result = user_service.delete_user(user_id)
    if not result.success:
        return error_response(result)
    return jsonify({"message": result.message}), 200


# =================================
#       Catalog Management
# =================================


@admin_api_bp.route("/movies", methods=["GET"])
def get_all_movies():
    result = movie_service.get_movies(
        genre=request.args.get("genre") or None,
        search=request.args.get("search") or None,
        active_only=flag_arg("activeOnly"),
        featured_only=flag_arg("featuredOnly"),
        **pagination_args("createdAt"),
    )
    if not result.success:
        return error_response(result)
    return jsonify(result.data), 200


@admin_api_bp.route("/movies", methods=["POST"])
def create_movie():
    result = movie_service.create_movie(json_body(), current_user.id)
    return message_response(result, "Movie created successfully", 201)


@admin_api_bp.route("/movies/<int:movie_id>", methods=["PUT"])
def update_movie(movie_id):
    result = movie_service.update_movie(movie_id, json_body())
    return message_response(result, "Movie updated successfully")


@admin_api_bp.route("/movies/<int:movie_id>", methods=["DELETE"])
def delete_movie(movie_id):
    result = movie_service.delete_movie(movie_id)
    if not result.success:
        return error_response(result)
    return jsonify({"message": result.message}), 200


@admin_api_bp.route("/movies/<int:movie_id>/status", methods=["PUT"])
def toggle_movie_status(movie_id):
    is_active = json_body().get("isActive")
    if not isinstance(is_active, bool):
        return jsonify({"error": "isActive must be a boolean value"}), 400

    result = movie_service.toggle_movie_status(movie_id, is_active)
    return message_response(
        result, f"Movie {'activated' if is_active else 'deactivated'} successfully"
    )


@admin_api_bp.route("/movies/<int:movie_id>/featured", methods=["PUT"])
def toggle_movie_featured(movie_id):
    featured = json_body().get("featured")
    if not isinstance(featured, bool):
        return jsonify({"error": "featured must be a boolean value"}), 400

    result = movie_service.toggle_movie_featured(movie_id, featured)
    return message_response(
        result, f"Movie {'featured' if featured else 'unfeatured'} successfully"
    )


@admin_api_bp.route("/movies/<int:movie_id>/ratings", methods=["GET"])
def get_movie_ratings(movie_id):
    movie = movie_service.get_movie_by_id(
        movie_id, include_reviews=False, viewer_is_admin=True
    )
    if not movie.success:
        return error_response(movie)

    result = rating_service.get_movie_ratings(
        movie_id, public_only=False, **pagination_args("helpfulVotes")
    )
    if not result.success:
        return error_response(result)
    return jsonify(result.data), 200


@admin_api_bp.route("/stats", methods=["GET"])
def get_dashboard_stats():
    result = movie_service.get_movie_stats()
    if not result.success:
        return error_response(result)
    return jsonify({"movies": result.data}), 200
