from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from auth import viewer_is_admin
from routes import error_response, flag_arg, json_body, message_response, pagination_args
from services import movie_service, rating_service


movie_api_bp = Blueprint("movie", __name__)


def _parse_rating(value):
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        return None
    try:
        rating = int(value)
    except ValueError:
        return None
    return rating if 1 <= rating <= 10 else None


# =================================
#        Public Movie Endpoints
# =================================


@movie_api_bp.route("", methods=["GET"])
def get_movies():
    result = movie_service.get_movies(
        genre=request.args.get("genre") or None,
        search=request.args.get("search") or None,
        active_only=True,
        featured_only=flag_arg("featured"),
        **pagination_args("createdAt"),
    )
    if not result.success:
        return error_response(result)
    return jsonify(result.data), 200


@movie_api_bp.route("/<int:movie_id>", methods=["GET"])
def get_movie(movie_id):
    result = movie_service.get_movie_by_id(
        movie_id, include_reviews=True, viewer_is_admin=viewer_is_admin()
    )
    if not result.success:
        return error_response(result)

    movie = result.data
    movie["userRating"] = None
    if current_user.is_authenticated:
        own = rating_service.get_user_rating(current_user.id, movie_id)
        if own.success:
            movie["userRating"] = own.data

    return jsonify(movie), 200


@movie_api_bp.route("/<int:movie_id>/ratings", methods=["GET"])
def get_movie_ratings(movie_id):
    movie = movie_service.get_movie_by_id(
        movie_id, include_reviews=False, viewer_is_admin=viewer_is_admin()
    )
    if not movie.success:
        return error_response(movie)

    result = rating_service.get_movie_ratings(
        movie_id, public_only=True, **pagination_args("helpfulVotes")
    )
    if not result.success:
        return error_response(result)
    return jsonify(result.data), 200


# =================================
#       Authenticated Endpoints
# =================================


@movie_api_bp.route("/<int:movie_id>/rate", methods=["POST"])
@login_required
def rate_movie(movie_id):
    data = json_body()
    rating = _parse_rating(data.get("rating"))
    if rating is None:
        return jsonify({"error": "Rating must be between 1 and 10"}), 400

    movie = movie_service.get_movie_by_id(
        movie_id, include_reviews=False, viewer_is_admin=True
    )
    if not movie.success:
        return error_response(movie)
    if not movie.data["isActive"]:
        return jsonify({"error": "Cannot rate inactive movie"}), 400

    result = rating_service.create_or_update_rating(
        current_user.id,
        movie_id,
        {
            "rating": rating,
            "review": data.get("review"),
            "isPublic": data.get("isPublic"),
        },
    )
    if not result.success:
        return error_response(result)

    if result.is_update:
        return message_response(result, "Rating updated successfully", 200)
    return message_response(result, "Rating created successfully", 201)


@movie_api_bp.route("/<int:movie_id>/rate", methods=["DELETE"])
@login_required
def delete_movie_rating(movie_id):
    result = rating_service.delete_rating(current_user.id, movie_id)
    if not result.success:
        return error_response(result)
    return jsonify({"message": result.message}), 200


@movie_api_bp.route("/ratings/<int:rating_id>/helpful", methods=["POST"])
@login_required
def mark_review_helpful(rating_id):
    result = rating_service.mark_review_helpful(current_user.id, rating_id)
    return message_response(result, "Review marked as helpful")


@movie_api_bp.route("/ratings/<int:rating_id>/helpful", methods=["DELETE"])
@login_required
def remove_helpful_mark(rating_id):
    result = rating_service.remove_helpful_mark(current_user.id, rating_id)
    return message_response(result, "Helpful mark removed")
