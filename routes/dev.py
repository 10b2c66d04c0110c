from flask import Blueprint, jsonify

from auth import require_admin
from routes import error_response, json_body
from services import user_service


# Only registered when FLASK_ENV=development
dev_api_bp = Blueprint("dev", __name__)

# Development helpers still fall under the admin-only user-management rule
dev_api_bp.before_request(require_admin)


def _summary(user):
    return {
        "id": user["id"],
        "email": user["email"],
        "name": user["fullName"],
        "isAdmin": user["isAdmin"],
    }


@dev_api_bp.route("/make-admin", methods=["POST"])
def make_admin():
    data = json_body()
    email = data.get("email")
    user_id = data.get("userId")

    if not email and not user_id:
        return jsonify(
            {
                "error": "Either email or userId is required",
                "example": {
                    "byEmail": {"email": "admin@example.com"},
                    "byUserId": {"userId": "user_xyz123"},
                },
            }
        ), 400

    if email:
        lookup = user_service.find_user_by_email(email)
        if not lookup.success:
            return error_response(lookup)
        user_id = lookup.data["id"]

    current = user_service.get_user_by_id(user_id)
    if not current.success:
        return error_response(current)
    if current.data["isAdmin"]:
        return jsonify(
            {
                "error": f"User {current.data['email']} is already an admin",
                "userData": _summary(current.data),
            }
        ), 400

    result = user_service.set_user_admin_status(
        user_id, True, promoted_by="development-endpoint"
    )
    if not result.success:
        return error_response(result)

    return jsonify(
        {"message": "User successfully promoted to admin", "userData": result.data}
    ), 200


@dev_api_bp.route("/admin-status/<user_id>", methods=["GET"])
def admin_status(user_id):
    result = user_service.get_user_by_id(user_id)
    if not result.success:
        return error_response(result)

    user = result.data
    return jsonify(
        {
            "userId": user["id"],
            "email": user["email"],
            "name": user["fullName"],
            "isAdmin": user["isAdmin"],
            "role": "admin" if user["isAdmin"] else "user",
        }
    ), 200


@dev_api_bp.route("/list-admins", methods=["GET"])
def list_admins():
    result = user_service.list_admins()
    if not result.success:
        return error_response(result)
    return jsonify(result.data), 200
