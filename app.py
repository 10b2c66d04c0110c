import logging

from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from auth import login_manager
from config import Config
from models import db
from routes import ENDPOINTS, other_api_bp
from routes.admin import admin_api_bp
from routes.dev import dev_api_bp
from routes.movie import movie_api_bp
from routes.user import user_api_bp
from routes.watchlist import watchlist_api_bp
from services.identity_provider import ClerkIdentityProvider, IdentityProviderError
from services.user_service import initialize_super_admin


def register_error_handlers(app):
    @app.errorhandler(IdentityProviderError)
    def identity_provider_unavailable(error):
        app.logger.error("Identity provider error: %s", error)
        return jsonify({"error": "Failed to verify identity"}), 500

    @app.errorhandler(HTTPException)
    def http_error(error):
        if error.code == 404:
            return jsonify(
                {"error": "Endpoint not found", "availableEndpoints": ENDPOINTS}
            ), 404
        return jsonify({"error": error.description}), error.code

    @app.errorhandler(Exception)
    def unhandled_error(error):
        app.logger.exception("Unhandled error")
        body = {"error": "Internal server error"}
        if app.config["ENVIRONMENT"] == "development":
            body["message"] = str(error)
        return jsonify(body), 500


def create_app(config_object=Config, identity_provider=None):
    app = Flask(__name__)
    app.config.from_object(config_object)
    CORS(app, origins=app.config["CORS_ORIGINS"])

    logging.basicConfig(
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
    )
    app.logger.setLevel(app.config["LOG_LEVEL"])

    # Initialize SQLAlchemy with the configured engine options
    db.init_app(app)
    login_manager.init_app(app)

    # The identity provider client lives on the app, like any shared client
    app.identity_provider = identity_provider or ClerkIdentityProvider.from_config(
        app.config
    )

    # Register your Blueprints
    app.register_blueprint(other_api_bp)
    app.register_blueprint(movie_api_bp, url_prefix="/api/movies")
    app.register_blueprint(admin_api_bp, url_prefix="/api/admin")
    app.register_blueprint(watchlist_api_bp, url_prefix="/api/watchlist")
    app.register_blueprint(user_api_bp, url_prefix="/api/users")

    development = app.config["ENVIRONMENT"] == "development"
    if development:
        app.register_blueprint(dev_api_bp, url_prefix="/dev")

    register_error_handlers(app)

    # Ensure DB tables exist
    with app.app_context():
        db.create_all()

        if development and not app.config.get("TESTING"):
            app.logger.info("Checking for super admin...")
            initialize_super_admin(app.config.get("SUPER_ADMIN_EMAIL"))

    app.logger.info("Environment: %s", app.config["ENVIRONMENT"])
    return app


if __name__ == "__main__":
    app = create_app()
    app.run(host="0.0.0.0", port=app.config["PORT"], debug=True)
