from functools import wraps

from flask import current_app, jsonify, request
from flask_login import LoginManager, UserMixin, current_user

from services.identity_provider import InvalidTokenError, UserNotFoundError
from services.user_service import is_admin_record


login_manager = LoginManager()
# Stateless API: identity comes from the bearer token on every request
login_manager.session_protection = None


class AuthUser(UserMixin):
    """The authenticated caller, built from the identity provider's record."""

    def __init__(self, record):
        self.id = record["id"]
        self.record = record
        self.is_admin = is_admin_record(record)

    def __repr__(self):
        return f"<AuthUser id={self.id}, admin={self.is_admin}>"


@login_manager.request_loader
def load_user_from_request(request):
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None

    provider = current_app.identity_provider
    try:
        user_id = provider.verify_session_token(token.strip())
        record = provider.get_user(user_id)
    except (InvalidTokenError, UserNotFoundError):
        return None

    if record.get("banned"):
        current_app.logger.info("Rejected request from banned user %s", user_id)
        return None
    return AuthUser(record)


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"error": "Authentication required"}), 401


# =================================
#       Authorization Checks
# =================================


def viewer_is_admin():
    return current_user.is_authenticated and current_user.is_admin


def is_owner(resource_owner_id):
    return current_user.is_authenticated and current_user.id == resource_owner_id


def require_admin():
    """
    Returns an error response when the caller is not an admin, else None.
    Usable directly as a blueprint before_request hook.
    """
    if request.method == "OPTIONS":
        return None
    if not current_user.is_authenticated:
        return login_manager.unauthorized()
    if not current_user.is_admin:
        return jsonify({"error": "Admin access required"}), 403
    return None


def require_login():
    if request.method == "OPTIONS":
        return None
    if not current_user.is_authenticated:
        return login_manager.unauthorized()
    return None


def admin_or_owner_required(func):
    """Guards views taking an ``user_id`` argument naming the resource owner."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        if not current_user.is_authenticated:
            return login_manager.unauthorized()
        if not (current_user.is_admin or is_owner(kwargs.get("user_id"))):
            return jsonify(
                {"error": "Access denied. Admin or owner access required"}
            ), 403
        return func(*args, **kwargs)

    return wrapper
