"""
Provider Tests

Authorization URLs, token exchange (including client authentication
variants), and per-vendor profile normalization. HTTP is served by an
AsyncMock client returning real httpx.Response objects.
"""

import base64
import json
from urllib.parse import parse_qs, urlsplit

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from jose import jwt as jose_jwt

from authsnap.config import ProviderConfig
from authsnap.errors import ProviderError, TokenExchangeError
from authsnap.providers import (
    BUILT_IN_PROVIDERS,
    AppleProvider,
    DiscordProvider,
    GitHubProvider,
    GoogleProvider,
    LinkedInProvider,
    MicrosoftProvider,
    SpotifyProvider,
    TwitterProvider,
)

from conftest import json_response, mock_http_client, text_response

CALLBACK = "https://app.example.com/auth/cb"


def provider_config(**kwargs):
    return ProviderConfig(client_id="client-123", client_secret="secret-456", **kwargs)


def query_of(url):
    return {key: values[0] for key, values in parse_qs(urlsplit(url).query).items()}


def generate_ec_key():
    """Generate a P-256 key pair (PKCS8 private PEM, public PEM) for Apple tests."""
    private_key = ec.generate_private_key(ec.SECP256R1())
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return private_pem.decode(), public_pem.decode()


def test_registry_covers_all_vendors():
    assert set(BUILT_IN_PROVIDERS) == {
        "google", "github", "discord", "twitter", "apple", "microsoft", "linkedin", "spotify",
    }
    for name, cls in BUILT_IN_PROVIDERS.items():
        assert cls.name == name


class TestAuthorizationUrls:

    def test_google(self):
        url = GoogleProvider(provider_config()).build_authorization_url(CALLBACK, "st")
        params = query_of(url)

        assert url.startswith("https://accounts.google.com/o/oauth2/v2/auth?")
        assert params == {
            "client_id": "client-123",
            "redirect_uri": CALLBACK,
            "response_type": "code",
            "scope": "openid email profile",
            "state": "st",
            "access_type": "offline",
            "prompt": "select_account consent",
        }

    def test_configured_scopes_and_prompt_override_defaults(self):
        provider = DiscordProvider(provider_config(scopes=["identify", "guilds"], prompt="none"))
        params = query_of(provider.build_authorization_url(CALLBACK, "st"))

        assert params["scope"] == "identify guilds"
        assert params["prompt"] == "none"

    def test_default_prompts(self):
        assert query_of(GitHubProvider(provider_config()).build_authorization_url(CALLBACK, "s"))["prompt"] == "select_account"
        assert query_of(DiscordProvider(provider_config()).build_authorization_url(CALLBACK, "s"))["prompt"] == "consent"
        assert "prompt" not in query_of(SpotifyProvider(provider_config()).build_authorization_url(CALLBACK, "s"))

    def test_microsoft_tenant(self):
        provider = MicrosoftProvider(provider_config(tenant="contoso.onmicrosoft.com"))
        url = provider.build_authorization_url(CALLBACK, "st")

        assert url.startswith("https://login.microsoftonline.com/contoso.onmicrosoft.com/oauth2/v2.0/authorize?")
        assert provider.endpoints.token == "https://login.microsoftonline.com/contoso.onmicrosoft.com/oauth2/v2.0/token"
        assert query_of(url)["response_mode"] == "query"
        assert MicrosoftProvider(provider_config()).tenant == "common"

    def test_apple_form_post(self):
        params = query_of(AppleProvider(provider_config()).build_authorization_url(CALLBACK, "st"))
        assert params["response_mode"] == "form_post"
        assert params["scope"] == "name email"

    def test_twitter_pkce_challenge(self):
        params = query_of(TwitterProvider(provider_config()).build_authorization_url(CALLBACK, "st", "challenge-xyz"))
        assert params["code_challenge"] == "challenge-xyz"
        assert params["code_challenge_method"] == "S256"
        assert TwitterProvider.uses_pkce


class TestTokenExchange:

    @pytest.mark.asyncio
    async def test_post_credentials_in_body(self):
        client = mock_http_client(
            json_response(200, {"access_token": "at", "refresh_token": "rt", "expires_in": 60, "scope": "email"})
        )
        provider = GoogleProvider(provider_config(), http_client=client)

        tokens = await provider.exchange_code("the-code", CALLBACK)

        assert tokens.access_token == "at"
        assert tokens.refresh_token == "rt"
        assert tokens.scope == "email"
        assert tokens.expires_at is not None

        kwargs = client.request.call_args.kwargs
        assert kwargs["data"] == {
            "client_id": "client-123",
            "client_secret": "secret-456",
            "code": "the-code",
            "redirect_uri": CALLBACK,
            "grant_type": "authorization_code",
        }
        assert "Authorization" not in kwargs["headers"]

    @pytest.mark.asyncio
    async def test_twitter_uses_basic_auth_and_verifier(self):
        client = mock_http_client(json_response(200, {"access_token": "at"}))
        provider = TwitterProvider(provider_config(), http_client=client)

        await provider.exchange_code("code", CALLBACK, "verifier-abc")

        kwargs = client.request.call_args.kwargs
        expected = base64.b64encode(b"client-123:secret-456").decode()
        assert kwargs["headers"]["Authorization"] == f"Basic {expected}"
        assert kwargs["data"]["code_verifier"] == "verifier-abc"
        assert "client_secret" not in kwargs["data"]

    @pytest.mark.asyncio
    async def test_exchange_failure_carries_status_and_body(self):
        client = mock_http_client(text_response(401, "invalid_client"))
        provider = GitHubProvider(provider_config(), http_client=client)

        with pytest.raises(TokenExchangeError) as exc_info:
            await provider.exchange_code("code", CALLBACK)

        error = exc_info.value
        assert isinstance(error, ProviderError)
        assert error.provider == "github"
        assert error.status == 401
        assert error.body == "invalid_client"

    @pytest.mark.asyncio
    async def test_refresh_failure_is_provider_error(self):
        client = mock_http_client(text_response(400, "invalid_grant"))
        provider = SpotifyProvider(provider_config(), http_client=client)

        with pytest.raises(ProviderError) as exc_info:
            await provider.refresh_tokens("dead")
        assert not isinstance(exc_info.value, TokenExchangeError)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [["not", "an", "object"], "token", None, {"access_token": "a", "expires_in": [1]}])
    async def test_malformed_token_body_is_exchange_error(self, payload):
        client = mock_http_client(json_response(200, payload))
        provider = GitHubProvider(provider_config(), http_client=client)

        with pytest.raises(TokenExchangeError) as exc_info:
            await provider.exchange_code("code", CALLBACK)
        assert exc_info.value.status == 200


class TestProfiles:

    @pytest.mark.asyncio
    async def test_google(self):
        raw = {"id": "g1", "email": "a@gmail.com", "name": "A", "picture": "https://pic", "verified_email": True}
        client = mock_http_client(json_response(200, raw))
        user = await GoogleProvider(provider_config(), http_client=client).fetch_profile("at")

        assert (user.id, user.email, user.name, user.avatar, user.provider) == ("g1", "a@gmail.com", "A", "https://pic", "google")
        assert user.email_verified is True
        assert user.raw == raw

        method, url = client.request.call_args.args
        assert url == "https://www.googleapis.com/oauth2/v2/userinfo"
        assert client.request.call_args.kwargs["headers"]["Authorization"] == "Bearer at"

    @pytest.mark.asyncio
    async def test_github_public_email(self):
        client = mock_http_client(json_response(200, {"id": 7, "login": "octo", "name": None, "email": "o@gh.com"}))
        user = await GitHubProvider(provider_config(), http_client=client).fetch_profile("at")

        assert user.id == "7"
        assert user.name == "octo"
        assert user.email == "o@gh.com"
        assert user.email_verified is True
        assert client.request.call_count == 1

    @pytest.mark.asyncio
    async def test_github_private_email_fallback(self):
        emails = [
            {"email": "second@x.com", "primary": False, "verified": True},
            {"email": "primary@x.com", "primary": True, "verified": False},
        ]
        client = mock_http_client(
            json_response(200, {"id": 8, "login": "priv", "name": "Priv", "email": None}),
            json_response(200, emails),
        )
        user = await GitHubProvider(provider_config(), http_client=client).fetch_profile("at")

        assert user.email == "primary@x.com"
        assert user.email_verified is False
        assert client.request.call_args.args[1] == "https://api.github.com/user/emails"

    def test_github_no_emails_at_all(self):
        user = GitHubProvider(provider_config()).normalize_profile({"id": 9, "login": "x", "email": None}, {"emails": []})
        assert user.email == ""
        assert user.email_verified is False

    def test_discord_avatar_variants(self):
        provider = DiscordProvider(provider_config())

        static = provider.normalize_profile({"id": "1", "username": "u", "avatar": "abc", "verified": True}, {})
        animated = provider.normalize_profile({"id": "1", "username": "u", "global_name": "Global", "avatar": "a_abc"}, {})
        none = provider.normalize_profile({"id": "1", "username": "u", "avatar": None}, {})

        assert static.avatar == "https://cdn.discordapp.com/avatars/1/abc.png"
        assert static.name == "u"
        assert static.email_verified is True
        assert animated.avatar == "https://cdn.discordapp.com/avatars/1/a_abc.gif"
        assert animated.name == "Global"
        assert none.avatar is None
        assert none.email == ""

    @pytest.mark.asyncio
    async def test_twitter_data_envelope(self):
        client = mock_http_client(
            json_response(200, {"data": {"id": "t1", "name": "Tweety", "username": "tw", "profile_image_url": "https://img"}})
        )
        user = await TwitterProvider(provider_config(), http_client=client).fetch_profile("at")

        assert (user.id, user.name, user.email, user.avatar) == ("t1", "Tweety", "", "https://img")
        assert user.raw["username"] == "tw"
        assert "user.fields=" in client.request.call_args.args[1]

    def test_microsoft_email_fallback(self):
        provider = MicrosoftProvider(provider_config())
        user = provider.normalize_profile({"id": "m1", "displayName": "M", "mail": None, "userPrincipalName": "m@corp.com"}, {})

        assert user.email == "m@corp.com"
        assert user.email_verified is True
        assert user.avatar is None

    def test_linkedin(self):
        user = LinkedInProvider(provider_config()).normalize_profile(
            {"sub": "li1", "name": "L", "email": "l@x.com", "picture": "https://p", "email_verified": True}, {}
        )
        assert (user.id, user.email, user.avatar, user.email_verified) == ("li1", "l@x.com", "https://p", True)

    def test_spotify(self):
        provider = SpotifyProvider(provider_config())
        with_image = provider.normalize_profile({"id": "s1", "display_name": None, "images": [{"url": "https://i1"}]}, {})
        without = provider.normalize_profile({"id": "s2", "display_name": "DJ", "images": []}, {})

        assert with_image.name == "s1"
        assert with_image.avatar == "https://i1"
        assert without.avatar is None
        assert without.email_verified is False

    @pytest.mark.asyncio
    async def test_profile_api_failure(self):
        client = mock_http_client(text_response(403, "forbidden"))
        with pytest.raises(ProviderError) as exc_info:
            await LinkedInProvider(provider_config(), http_client=client).fetch_profile("at")
        assert exc_info.value.status == 403


class TestApple:

    def id_token(self, **claims):
        return jose_jwt.encode({"sub": "apple-1", **claims}, "unused-secret", algorithm="HS256")

    @pytest.mark.asyncio
    async def test_profile_from_id_token_and_first_login_user(self):
        provider = AppleProvider(provider_config())
        user_payload = json.dumps({"name": {"firstName": "Tim", "lastName": "Apple"}})

        user = await provider.fetch_profile(
            "at", {"id_token": self.id_token(email="tim@icloud.com", email_verified="true"), "user": user_payload}
        )

        assert user.id == "apple-1"
        assert user.name == "Tim Apple"
        assert user.email == "tim@icloud.com"
        assert user.email_verified is True
        assert user.avatar is None
        assert user.raw["user"]["name"]["firstName"] == "Tim"

    @pytest.mark.asyncio
    async def test_name_falls_back_to_email_local_part(self):
        user = await AppleProvider(provider_config()).fetch_profile("at", {"id_token": self.id_token(email="x@y.com")})
        assert user.name == "x"
        assert user.email_verified is False

    @pytest.mark.asyncio
    async def test_name_without_email(self):
        user = await AppleProvider(provider_config()).fetch_profile("at", {"id_token": self.id_token()})
        assert user.name == "Apple User"
        assert user.email == ""

    @pytest.mark.asyncio
    async def test_missing_id_token(self):
        with pytest.raises(ProviderError):
            await AppleProvider(provider_config()).fetch_profile("at", {})

    @pytest.mark.asyncio
    async def test_exchange_keeps_id_token(self):
        client = mock_http_client(json_response(200, {"access_token": "at", "id_token": "the.id.token"}))
        tokens = await AppleProvider(provider_config(), http_client=client).exchange_code("code", CALLBACK)

        assert tokens.id_token == "the.id.token"
        assert client.request.call_args.kwargs["data"]["client_secret"] == "secret-456"

    @pytest.mark.asyncio
    async def test_generated_client_secret(self):
        private_pem, public_pem = generate_ec_key()
        provider = AppleProvider(provider_config(team_id="TEAM1", key_id="KEY1", private_key=private_pem))

        secret = await provider.client_secret()

        assert jose_jwt.get_unverified_header(secret)["kid"] == "KEY1"
        claims = jose_jwt.decode(secret, public_pem, algorithms=["ES256"], audience="https://appleid.apple.com")
        assert claims["iss"] == "TEAM1"
        assert claims["sub"] == "client-123"
        assert claims["exp"] - claims["iat"] == 300
