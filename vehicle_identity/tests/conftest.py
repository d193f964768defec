"""
Pytest configuration for vehicle_identity. In-memory SQLite and a fake identity provider
served through httpx.MockTransport, so tests never touch the network or the filesystem.
"""
import os

os.environ["IDENTITY_DATABASE_URL"] = "sqlite:///:memory:"

from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs

import httpx
import pytest
from fastapi.testclient import TestClient

from vehicle_identity.identity import IdentityManager
from vehicle_identity.main import create_app
from vehicle_identity.notifier import LoginNotifier
from vehicle_identity.oauth_token import OAuthToken

ISSUER = "https://id.example.test"
CLIENT_ID = "test-client"
CLIENT_SECRET = "test-secret"
REDIRECT_URI = "http://127.0.0.1:7070/providerauth/callback"
BASE_URI = "http://127.0.0.1:7070/"


class FakeProvider:
    """Discovery document + token endpoint. Tests tweak the responses per case."""

    def __init__(self):
        self.discovery_status = 200
        self.discovery = {
            "issuer": ISSUER,
            "authorization_endpoint": f"{ISSUER}/as/authorization.oauth2",
            "token_endpoint": f"{ISSUER}/as/token.oauth2",
        }
        self.token_status = 200
        self.token_body = {
            "access_token": "at-1",
            "refresh_token": "rt-1",
            "token_type": "Bearer",
            "expires_in": 3600,
        }
        self.token_forms: list[dict[str, str]] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/.well-known/openid-configuration":
            return httpx.Response(self.discovery_status, json=self.discovery)
        if request.url.path == "/as/token.oauth2":
            form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
            self.token_forms.append(form)
            return httpx.Response(self.token_status, json=self.token_body)
        return httpx.Response(404)


def _make_token(access="at", refresh="rt", expires_in: int = 3600) -> OAuthToken:
    return OAuthToken(
        access_token=access,
        refresh_token=refresh,
        expiry=datetime.now(timezone.utc) + timedelta(seconds=expires_in),
    )


@pytest.fixture
def make_token():
    """Factory: token expiring expires_in seconds from now (negative = already expired)."""
    return _make_token


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def http(provider):
    with httpx.Client(transport=httpx.MockTransport(provider.handler)) as c:
        yield c


@pytest.fixture
def notifier():
    return LoginNotifier()


@pytest.fixture
def make_identity(http):
    """Factory: IdentityManager wired to the fake provider; kwargs go to the constructor."""

    def _make(notifier=None, **kwargs):
        return IdentityManager(
            CLIENT_ID,
            CLIENT_SECRET,
            REDIRECT_URI,
            BASE_URI,
            notifier or LoginNotifier(),
            issuer=ISSUER,
            http=http,
            **kwargs,
        )

    return _make


@pytest.fixture
def identity(make_identity, notifier):
    return make_identity(notifier)


@pytest.fixture
def client(identity):
    return TestClient(create_app(identity))
