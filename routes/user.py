from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from auth import admin_or_owner_required
from routes import error_response, json_body, pagination_args
from services import rating_service, user_service


user_api_bp = Blueprint("user", __name__)


def _respond(result):
    if not result.success:
        return error_response(result)
    return jsonify(result.data), 200


# =================================
#       Current User Endpoints
# =================================


@user_api_bp.route("/me", methods=["GET"])
@login_required
def get_current_user():
    return _respond(user_service.get_user_by_id(current_user.id))


@user_api_bp.route("/profile", methods=["GET"])
@login_required
def get_current_user_profile():
    return _respond(user_service.get_user_profile(current_user.id))


@user_api_bp.route("/metadata", methods=["PUT"])
@login_required
def update_user_metadata():
    data = json_body()
    return _respond(
        user_service.update_user_metadata(
            current_user.id,
            public_metadata=data.get("publicMetadata"),
            private_metadata=data.get("privateMetadata"),
        )
    )


@user_api_bp.route("/me/stats", methods=["GET"])
@login_required
def get_current_user_stats():
    return _respond(rating_service.get_user_rating_stats(current_user.id))


@user_api_bp.route("/me/ratings", methods=["GET"])
@login_required
def get_current_user_ratings():
    return _respond(
        rating_service.get_user_ratings(
            current_user.id, **pagination_args("createdAt")
        )
    )


# =================================
#      Other User Endpoints
# =================================


@user_api_bp.route("/<user_id>", methods=["GET"])
@admin_or_owner_required
def get_user(user_id):
    return _respond(user_service.get_user_by_id(user_id))


@user_api_bp.route("/<user_id>/ratings", methods=["GET"])
@admin_or_owner_required
def get_user_ratings(user_id):
    return _respond(
        rating_service.get_user_ratings(user_id, **pagination_args("createdAt"))
    )
