"""
Shared fixtures for AuthSnap tests.

StubProvider stands in for a real identity provider: it returns a fixed
TokenSet and AuthUser and records the calls it receives.
"""

from typing import Any, Dict, Optional
from unittest.mock import AsyncMock

import httpx
import pytest

from authsnap.core import AuthSnap
from authsnap.models import AuthUser, TokenSet
from authsnap.providers.base import BaseProvider, ProviderEndpoints


TEST_SECRET = "test-session-secret-0123456789abcdef"


def json_response(status_code: int, payload: Any) -> httpx.Response:
    """Build a real httpx.Response carrying a JSON body."""
    return httpx.Response(status_code, json=payload)


def text_response(status_code: int, text: str) -> httpx.Response:
    return httpx.Response(status_code, text=text)


def mock_http_client(*responses: httpx.Response) -> AsyncMock:
    """AsyncMock client whose ``request`` returns ``responses`` in order."""
    client = AsyncMock(spec=httpx.AsyncClient)
    client.request.side_effect = list(responses)
    return client


class StubProvider(BaseProvider):
    """Provider returning canned tokens and profile."""

    name = "stub"
    endpoints = ProviderEndpoints(
        authorization="https://idp.example.com/authorize",
        token="https://idp.example.com/token",
        userinfo="https://idp.example.com/userinfo",
    )
    default_scopes = ["openid", "email"]

    def __init__(self, config, http_client=None):
        super().__init__(config, http_client)
        self.tokens = TokenSet(access_token="stub-access", refresh_token="stub-refresh", expires_at=None)
        self.user = AuthUser(id="u-1", email="ada@example.com", name="Ada", provider="stub")
        self.exchange_calls = []
        self.profile_calls = []

    async def exchange_code(self, code: str, callback_url: str, code_verifier: Optional[str] = None) -> TokenSet:
        self.exchange_calls.append((code, callback_url, code_verifier))
        return self.tokens

    async def fetch_profile(self, access_token: str, extra: Optional[Dict[str, Any]] = None) -> AuthUser:
        self.profile_calls.append((access_token, extra))
        return self.user


def make_config(**overrides: Any) -> Dict[str, Any]:
    config: Dict[str, Any] = {
        "providers": {
            "stub": {"client_id": "stub-client", "client_secret": "stub-secret", "provider": StubProvider},
        },
        "session": {"secret": TEST_SECRET, "max_age": 3600, "secure": False},
    }
    config.update(overrides)
    return config


@pytest.fixture
def auth() -> AuthSnap:
    """AuthSnap with the stub provider and insecure cookies (for http://testserver)."""
    return AuthSnap(make_config())


@pytest.fixture
def sample_user() -> AuthUser:
    return AuthUser(
        id="12345",
        email="grace@example.com",
        name="Grace Hopper",
        avatar="https://example.com/grace.png",
        provider="github",
        email_verified=True,
        raw={"login": "grace"},
    )
