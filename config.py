import os
from dotenv import load_dotenv

# Only load .env in development mode (Optional)
if os.getenv("FLASK_ENV") == "development":
    load_dotenv()


class Config:
    # --------------------------------------
    # Flask / SQLAlchemy Settings
    # --------------------------------------
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "SQLALCHEMY_DATABASE_URI", "sqlite:///criticscore.db"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # 'pool_pre_ping': True tests the connection with a SELECT 1 before use.
    # 'pool_recycle' recycles connections after N seconds.
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 300,  # 5 minutes
    }

    # --------------------------------------
    # Identity provider (Clerk)
    # --------------------------------------
    CLERK_SECRET_KEY = os.getenv("CLERK_SECRET_KEY")
    CLERK_API_URL = os.getenv("CLERK_API_URL", "https://api.clerk.com/v1")
    # PEM public key; when unset the JWKS endpoint is queried instead
    CLERK_JWT_KEY = os.getenv("CLERK_JWT_KEY")
    CLERK_AUTHORIZED_PARTIES = [
        party.strip()
        for party in os.getenv("CLERK_AUTHORIZED_PARTIES", "").split(",")
        if party.strip()
    ]
    CLERK_TIMEOUT = float(os.getenv("CLERK_TIMEOUT", 10))

    SUPER_ADMIN_EMAIL = os.getenv("SUPER_ADMIN_EMAIL")

    # --------------------------------------
    # Service settings
    # --------------------------------------
    ENVIRONMENT = os.getenv("FLASK_ENV", "production")
    PORT = int(os.getenv("PORT", 3000))
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    DEFAULT_PAGE_SIZE = int(os.getenv("DEFAULT_PAGE_SIZE", 20))
    MAX_PAGE_SIZE = int(os.getenv("MAX_PAGE_SIZE", 100))

    # --------------------------------------
    # Flask Secret Key
    # (Make sure to set this as an environment variable in production)
    # --------------------------------------
    SECRET_KEY = os.getenv("SECRET_KEY", "default_secret_key")
