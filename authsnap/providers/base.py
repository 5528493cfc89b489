"""
Base OAuth provider.

Every provider exposes the same capability set:

    build_authorization_url(callback_url, state, code_challenge=None) -> str
    exchange_code(code, callback_url, code_verifier=None)             -> TokenSet
    fetch_profile(access_token, extra=None)                           -> AuthUser
    refresh_tokens(refresh_token)                                     -> TokenSet

Vendor differences are expressed as class-level data (endpoints, default
scopes, prompt, extra authorization parameters, PKCE, token endpoint
authentication) plus one ``normalize_profile`` mapping per vendor.
"""

import base64
import logging
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, List, Optional
from urllib.parse import urlencode

import httpx

from ..config import ProviderConfig
from ..errors import ProviderError, TokenExchangeError
from ..models import AuthUser, TokenSet

logger = logging.getLogger(__name__)


CLIENT_SECRET_POST = "client_secret_post"
CLIENT_SECRET_BASIC = "client_secret_basic"


@dataclass(frozen=True)
class ProviderEndpoints:
    """Authorization, token and (optional) userinfo URLs of a provider."""

    authorization: str
    token: str
    userinfo: Optional[str] = None


class BaseProvider:
    """
    Base class for all OAuth providers.

    Subclasses set the class attributes below and implement
    ``normalize_profile``. Vendors whose profile needs more than one API call
    override ``fetch_profile`` as well.

    Args:
        config: Provider client configuration
        http_client: Optional shared httpx.AsyncClient; when omitted a client
            is created for each request
    """

    name: ClassVar[str] = ""
    endpoints: ProviderEndpoints
    default_scopes: ClassVar[List[str]] = []
    default_prompt: ClassVar[Optional[str]] = None
    extra_authorization_params: ClassVar[Dict[str, str]] = {}
    uses_pkce: ClassVar[bool] = False
    token_auth_method: ClassVar[str] = CLIENT_SECRET_POST

    timeout: ClassVar[float] = 10.0

    def __init__(self, config: ProviderConfig, http_client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self.scopes: List[str] = list(config.scopes) if config.scopes else list(self.default_scopes)
        self.http_client = http_client

    # =========================================================================
    # Authorization URL
    # =========================================================================

    def authorization_params(self, callback_url: str, state: str) -> Dict[str, str]:
        params = {
            "client_id": self.config.client_id,
            "redirect_uri": callback_url,
            "response_type": "code",
            "scope": " ".join(self.scopes),
            "state": state,
        }
        params.update(self.extra_authorization_params)

        prompt = self.config.prompt or self.default_prompt
        if prompt:
            params["prompt"] = prompt
        return params

    def build_authorization_url(
        self,
        callback_url: str,
        state: str,
        code_challenge: Optional[str] = None,
    ) -> str:
        """
        Build the URL the user's browser is redirected to.

        Args:
            callback_url: Full callback URL registered with the provider
            state: CSRF state value
            code_challenge: S256 PKCE challenge, for providers that use PKCE
        """
        params = self.authorization_params(callback_url, state)
        if code_challenge:
            params["code_challenge"] = code_challenge
            params["code_challenge_method"] = "S256"

        return f"{self.endpoints.authorization}?{urlencode(params)}"

    # =========================================================================
    # Token Endpoint
    # =========================================================================

    async def client_secret(self) -> str:
        """Client secret sent to the token endpoint."""
        return self.config.client_secret

    async def _post_token_endpoint(self, form: Dict[str, str], error_cls: type, action: str) -> TokenSet:
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/x-www-form-urlencoded",
        }
        secret = await self.client_secret()

        if self.token_auth_method == CLIENT_SECRET_BASIC:
            credentials = f"{self.config.client_id}:{secret}".encode("utf-8")
            headers["Authorization"] = f"Basic {base64.b64encode(credentials).decode('ascii')}"
            form = {"client_id": self.config.client_id, **form}
        else:
            form = {"client_id": self.config.client_id, "client_secret": secret, **form}

        response = await self._request("POST", self.endpoints.token, data=form, headers=headers)

        if not response.is_success:
            logger.warning(
                f"{action} failed for provider {self.name}",
                extra={"provider": self.name, "status_code": response.status_code},
            )
            raise error_cls(
                f"{action} failed ({response.status_code}): {response.text}",
                self.name,
                status=response.status_code,
                body=response.text,
            )

        try:
            payload = response.json()
            if not isinstance(payload, dict):
                raise ValueError(f"expected a JSON object, got {type(payload).__name__}")
            return TokenSet.from_token_response(payload)
        except (ValueError, KeyError, TypeError) as e:
            raise error_cls(
                f"{action} returned an unusable response: {e}",
                self.name,
                status=response.status_code,
                body=response.text,
            ) from e

    async def exchange_code(
        self,
        code: str,
        callback_url: str,
        code_verifier: Optional[str] = None,
    ) -> TokenSet:
        """
        Exchange an authorization code for tokens.

        Raises:
            TokenExchangeError: If the provider rejects the exchange
        """
        form = {
            "code": code,
            "redirect_uri": callback_url,
            "grant_type": "authorization_code",
        }
        if code_verifier:
            form["code_verifier"] = code_verifier

        return await self._post_token_endpoint(form, TokenExchangeError, "Token exchange")

    async def refresh_tokens(self, refresh_token: str) -> TokenSet:
        """
        Exchange a refresh token for a new token set.

        Raises:
            ProviderError: If the provider rejects the refresh token
        """
        form = {
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
        }
        return await self._post_token_endpoint(form, ProviderError, "Token refresh")

    # =========================================================================
    # Profile
    # =========================================================================

    async def fetch_profile(self, access_token: str, extra: Optional[Dict[str, Any]] = None) -> AuthUser:
        """
        Fetch the user's profile and normalize it to an AuthUser.

        Args:
            access_token: Access token from the code exchange
            extra: Out-of-band data from the callback (id_token, ...)
        """
        if not self.endpoints.userinfo:
            raise ProviderError(f"Provider {self.name} has no userinfo endpoint", self.name)

        raw = await self._api_get(self.endpoints.userinfo, access_token)
        return self.normalize_profile(raw, extra or {})

    def normalize_profile(self, raw: Dict[str, Any], extra: Dict[str, Any]) -> AuthUser:
        """Map the provider's profile JSON onto AuthUser."""
        raise ProviderError("normalize_profile() must be implemented by subclass", self.name)

    # =========================================================================
    # HTTP Helpers
    # =========================================================================

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        if self.http_client is not None:
            return await self.http_client.request(method, url, **kwargs)

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.request(method, url, **kwargs)

    async def _api_get(self, url: str, access_token: str) -> Any:
        """
        GET a provider API with a bearer token.

        Raises:
            ProviderError: On a non-success response
        """
        response = await self._request(
            "GET",
            url,
            headers={
                "Authorization": f"Bearer {access_token}",
                "Accept": "application/json",
            },
        )

        if not response.is_success:
            raise ProviderError(
                f"API request failed ({response.status_code}): {response.text}",
                self.name,
                status=response.status_code,
                body=response.text,
            )

        return response.json()
