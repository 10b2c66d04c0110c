import time
import unittest
from unittest import mock

import jwt
import requests
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from services.identity_provider import (
    ClerkIdentityProvider,
    IdentityProviderError,
    InvalidTokenError,
    UserNotFoundError,
)


def _response(status_code, payload=None):
    response = mock.Mock(status_code=status_code, ok=200 <= status_code < 400)
    response.content = b"{}" if payload is not None else b""
    response.json.return_value = payload
    return response


class TestClerkRequests(unittest.TestCase):
    def setUp(self):
        self.provider = ClerkIdentityProvider(
            "sk_test_123", api_url="https://clerk.test/v1/"
        )
        patcher = mock.patch.object(self.provider.session, "request")
        self.request = patcher.start()
        self.addCleanup(patcher.stop)

    def test_secret_key_is_sent_as_bearer(self):
        self.assertEqual(
            self.provider.session.headers["Authorization"], "Bearer sk_test_123"
        )

    def test_get_user(self):
        self.request.return_value = _response(200, {"id": "user_1"})
        self.assertEqual(self.provider.get_user("user_1"), {"id": "user_1"})
        self.request.assert_called_once_with(
            "GET", "https://clerk.test/v1/users/user_1", timeout=10
        )

    def test_missing_user(self):
        self.request.return_value = _response(404, {"errors": []})
        with self.assertRaises(UserNotFoundError):
            self.provider.get_user("ghost")

    def test_server_error_and_outage(self):
        self.request.return_value = _response(502, {})
        with self.assertRaises(IdentityProviderError):
            self.provider.get_user("user_1")

        self.request.side_effect = requests.ConnectionError("connection refused")
        with self.assertRaises(IdentityProviderError):
            self.provider.list_users()

    def test_list_and_count_filter_by_email(self):
        self.request.return_value = _response(200, [])
        self.provider.list_users(limit=5, offset=10, email_address="a@example.com")
        self.request.assert_called_with(
            "GET",
            "https://clerk.test/v1/users",
            timeout=10,
            params={"limit": 5, "offset": 10, "email_address": ["a@example.com"]},
        )

        self.request.return_value = _response(200, {"total_count": 7})
        self.assertEqual(self.provider.count_users(), 7)

    def test_update_metadata_sends_only_given_sections(self):
        self.request.return_value = _response(200, {"id": "user_1"})
        self.provider.update_user_metadata("user_1", public_metadata={"role": "admin"})
        self.request.assert_called_with(
            "PATCH",
            "https://clerk.test/v1/users/user_1/metadata",
            timeout=10,
            json={"public_metadata": {"role": "admin"}},
        )

    def test_ban_and_unban(self):
        self.request.return_value = _response(200, {"id": "user_1", "banned": True})
        self.provider.set_banned("user_1", True)
        self.request.assert_called_with(
            "POST", "https://clerk.test/v1/users/user_1/ban", timeout=10
        )
        self.provider.set_banned("user_1", False)
        self.request.assert_called_with(
            "POST", "https://clerk.test/v1/users/user_1/unban", timeout=10
        )


class TestClerkSessionTokens(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        cls.private_pem = key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        )
        cls.public_pem = key.public_key().public_bytes(
            serialization.Encoding.PEM,
            serialization.PublicFormat.SubjectPublicKeyInfo,
        ).decode()

    def setUp(self):
        self.provider = ClerkIdentityProvider(
            "sk_test_123",
            jwt_key=self.public_pem,
            authorized_parties=["http://localhost:5173"],
        )

    def token(self, **claims):
        payload = {
            "sub": "user_1",
            "exp": int(time.time()) + 60,
            "azp": "http://localhost:5173",
        }
        payload.update(claims)
        return jwt.encode(payload, self.private_pem, algorithm="RS256")

    def test_valid_token(self):
        self.assertEqual(self.provider.verify_session_token(self.token()), "user_1")

    def test_expired_token(self):
        with self.assertRaises(InvalidTokenError):
            self.provider.verify_session_token(
                self.token(exp=int(time.time()) - 60)
            )

    def test_unauthorized_party(self):
        with self.assertRaises(InvalidTokenError):
            self.provider.verify_session_token(
                self.token(azp="https://evil.example")
            )

    def test_malformed_token(self):
        with self.assertRaises(InvalidTokenError):
            self.provider.verify_session_token("not-a-jwt")

    def test_token_signed_with_another_key(self):
        other = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        forged = jwt.encode(
            {"sub": "user_1", "exp": int(time.time()) + 60},
            other,
            algorithm="RS256",
        )
        with self.assertRaises(InvalidTokenError):
            self.provider.verify_session_token(forged)


if __name__ == "__main__":
    unittest.main()
