"""
Adapter over the external identity provider.

The rest of the service only sees the IdentityProvider interface and the
three exceptions below. User records are plain dicts shaped like Clerk's
backend API user objects (snake_case keys, ``public_metadata`` holding the
``role`` claim).
"""

import jwt
import requests


class IdentityProviderError(Exception):
    """The identity provider is unreachable or answered with an error."""


class UserNotFoundError(IdentityProviderError):
    pass


class InvalidTokenError(Exception):
    pass


class IdentityProvider:
    def verify_session_token(self, token):
        """Returns the user id the token was issued to."""
        raise NotImplementedError

    def get_user(self, user_id):
        raise NotImplementedError

    def list_users(self, limit=10, offset=0, email_address=None):
        raise NotImplementedError

    def count_users(self, email_address=None):
        raise NotImplementedError

    def update_user_metadata(
        self, user_id, public_metadata=None, private_metadata=None
    ):
        """Deep-merges the given metadata into the user's record."""
        raise NotImplementedError

    def set_banned(self, user_id, banned):
        raise NotImplementedError

    def delete_user(self, user_id):
        raise NotImplementedError


class ClerkIdentityProvider(IdentityProvider):
    def __init__(
        self,
        secret_key,
        api_url="https://api.clerk.com/v1",
        jwt_key=None,
        authorized_parties=None,
        timeout=10,
    ):
        self.api_url = api_url.rstrip("/")
        self.jwt_key = jwt_key
        self.authorized_parties = authorized_parties or []
        self.timeout = timeout

        self.session = requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {secret_key}",
                "Content-Type": "application/json",
            }
        )
        self._jwks_client = None

    @classmethod
    def from_config(cls, config):
        return cls(
            secret_key=config.get("CLERK_SECRET_KEY"),
            api_url=config.get("CLERK_API_URL", "https://api.clerk.com/v1"),
            jwt_key=config.get("CLERK_JWT_KEY"),
            authorized_parties=config.get("CLERK_AUTHORIZED_PARTIES"),
            timeout=config.get("CLERK_TIMEOUT", 10),
        )

    # --------------------------------------
    # HTTP plumbing
    # --------------------------------------

    def _request(self, method, path, **kwargs):
        try:
            response = self.session.request(
                method, f"{self.api_url}{path}", timeout=self.timeout, **kwargs
            )
        except requests.RequestException as exc:
            raise IdentityProviderError(f"Identity provider unreachable: {exc}")

        if response.status_code == 404:
            raise UserNotFoundError(f"No such user: {path}")
        if not response.ok:
            raise IdentityProviderError(
                f"Identity provider returned {response.status_code} for {method} {path}"
            )
        return response.json() if response.content else None

    # --------------------------------------
    # Session tokens
    # --------------------------------------

    def _signing_key(self, token):
        if self.jwt_key:
            return self.jwt_key
        if self._jwks_client is None:
            self._jwks_client = jwt.PyJWKClient(
                f"{self.api_url}/jwks",
                headers={"Authorization": self.session.headers["Authorization"]},
            )
        try:
            return self._jwks_client.get_signing_key_from_jwt(token).key
        except jwt.exceptions.PyJWKClientConnectionError as exc:
            raise IdentityProviderError(f"Could not fetch signing keys: {exc}")

    def verify_session_token(self, token):
        try:
            claims = jwt.decode(
                token,
                self._signing_key(token),
                algorithms=["RS256"],
                options={"require": ["exp", "sub"]},
                leeway=5,
            )
        except jwt.PyJWTError as exc:
            raise InvalidTokenError(str(exc))

        if self.authorized_parties and claims.get("azp") not in self.authorized_parties:
            raise InvalidTokenError("Token issued to an unauthorized party")
        return claims["sub"]

    # --------------------------------------
    # Users
    # --------------------------------------

    def get_user(self, user_id):
        return self._request("GET", f"/users/{user_id}")

    def list_users(self, limit=10, offset=0, email_address=None):
        params = {"limit": limit, "offset": offset}
        if email_address:
            params["email_address"] = [email_address]
        return self._request("GET", "/users", params=params)

    def count_users(self, email_address=None):
        params = {"email_address": [email_address]} if email_address else None
        return self._request("GET", "/users/count", params=params)["total_count"]

    def update_user_metadata(
        self, user_id, public_metadata=None, private_metadata=None
    ):
        body = {}
        if public_metadata is not None:
            body["public_metadata"] = public_metadata
        if private_metadata is not None:
            body["private_metadata"] = private_metadata
        return self._request("PATCH", f"/users/{user_id}/metadata", json=body)

    def set_banned(self, user_id, banned):
        action = "ban" if banned else "unban"
        return self._request("POST", f"/users/{user_id}/{action}")

    def delete_user(self, user_id):
        self._request("DELETE", f"/users/{user_id}")
