import copy
import os
from datetime import date

from config import Config
from models import db
from models.movie import Movie
from services.identity_provider import (
    IdentityProvider,
    IdentityProviderError,
    InvalidTokenError,
    UserNotFoundError,
)


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.environ.get("TEST_FLASK_DB_URL", "sqlite://")
    SQLALCHEMY_ENGINE_OPTIONS = {}
    ENVIRONMENT = "testing"
    LOG_LEVEL = "WARNING"


class FakeIdentityProvider(IdentityProvider):
    """
    In-memory identity provider. Tokens are "token-<user_id>"; setting
    ``unavailable`` makes every call fail like a network outage.
    """

    def __init__(self):
        self.users = {}
        self.unavailable = False

    def add_user(self, user_id, role=None, banned=False, email=None):
        self.users[user_id] = {
            "id": user_id,
            "first_name": user_id.capitalize(),
            "last_name": "Tester",
            "image_url": None,
            "email_addresses": [
                {
                    "email_address": email or f"{user_id}@example.com",
                    "verification": {"status": "verified"},
                }
            ],
            "phone_numbers": [],
            "external_accounts": [],
            "public_metadata": {"role": role} if role else {},
            "private_metadata": {},
            "banned": banned,
            "created_at": 1700000000000,
            "last_sign_in_at": None,
        }
        return self.users[user_id]

    def _check(self):
        if self.unavailable:
            raise IdentityProviderError("identity provider is down")

    def _record(self, user_id):
        self._check()
        if user_id not in self.users:
            raise UserNotFoundError(user_id)
        return self.users[user_id]

    def verify_session_token(self, token):
        self._check()
        if not token.startswith("token-"):
            raise InvalidTokenError("malformed token")
        return token[len("token-"):]

    def get_user(self, user_id):
        return copy.deepcopy(self._record(user_id))

    def _matching(self, email_address):
        self._check()
        users = list(self.users.values())
        if email_address:
            users = [
                user
                for user in users
                if user["email_addresses"][0]["email_address"] == email_address
            ]
        return users

    def list_users(self, limit=10, offset=0, email_address=None):
        users = self._matching(email_address)[offset:offset + limit]
        return copy.deepcopy(users)

    def count_users(self, email_address=None):
        return len(self._matching(email_address))

    def update_user_metadata(
        self, user_id, public_metadata=None, private_metadata=None
    ):
        record = self._record(user_id)
        for key, patch in (
            ("public_metadata", public_metadata),
            ("private_metadata", private_metadata),
        ):
            for name, value in (patch or {}).items():
                if value is None:
                    record[key].pop(name, None)
                else:
                    record[key][name] = value
        return copy.deepcopy(record)

    def set_banned(self, user_id, banned):
        record = self._record(user_id)
        record["banned"] = banned
        return copy.deepcopy(record)

    def delete_user(self, user_id):
        self._record(user_id)
        del self.users[user_id]


def auth_headers(user_id):
    return {"Authorization": f"Bearer token-{user_id}"}


def make_movie(**overrides):
    """Inserts a movie directly and returns its id. Needs an app context."""
    fields = {
        "title": "Inception",
        "description": "A thief who steals corporate secrets through dreams.",
        "director": "Christopher Nolan",
        "cast": ["Leonardo DiCaprio", "Elliot Page"],
        "genre": ["Action", "Sci-Fi"],
        "release_date": date(2010, 7, 16),
        "duration": 148,
        "language": "English",
        "country": "United States",
        "added_by": "admin",
    }
    fields.update(overrides)
    movie = Movie(**fields)
    db.session.add(movie)
    db.session.commit()
    return movie.id


def movie_payload(**overrides):
    payload = {
        "title": "Arrival",
        "description": "A linguist works with the military to talk to aliens.",
        "director": "Denis Villeneuve",
        "cast": ["Amy Adams", "Jeremy Renner"],
        "genre": ["Drama", "Sci-Fi"],
        "releaseDate": "2016-11-11",
        "duration": 116,
        "language": "English",
        "country": "United States",
    }
    payload.update(overrides)
    return payload
