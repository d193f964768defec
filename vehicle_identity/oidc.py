"""
OIDC provider discovery and the OAuth2 authorization-code client.
Discovery runs once at construction; exchange and refresh POST to the token endpoint.
"""
import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

import httpx

from vehicle_identity.errors import CodeExchangeError, ProviderDiscoveryError, TokenRefreshError
from vehicle_identity.oauth_token import OAuthToken

logger = logging.getLogger(__name__)

WELL_KNOWN_PATH = "/.well-known/openid-configuration"


@dataclass(frozen=True)
class ProviderMetadata:
    issuer: str
    authorization_endpoint: str
    token_endpoint: str
    revocation_endpoint: str | None = None


def discover(issuer: str, http: httpx.Client) -> ProviderMetadata:
    """Fetch the discovery document. Raises ProviderDiscoveryError on any failure."""
    issuer = issuer.rstrip("/")
    url = f"{issuer}{WELL_KNOWN_PATH}"
    try:
        r = http.get(url, headers={"Accept": "application/json"})
    except httpx.HTTPError as e:
        raise ProviderDiscoveryError(f"failed to initialize OIDC provider: {e}") from e
    if r.status_code != 200:
        raise ProviderDiscoveryError(f"failed to initialize OIDC provider: {url} returned {r.status_code}")
    try:
        data = r.json()
    except ValueError as e:
        raise ProviderDiscoveryError(f"failed to initialize OIDC provider: invalid JSON from {url}") from e
    if not isinstance(data, dict):
        raise ProviderDiscoveryError(f"failed to initialize OIDC provider: invalid JSON from {url}")

    missing = [k for k in ("authorization_endpoint", "token_endpoint") if not data.get(k)]
    if missing:
        raise ProviderDiscoveryError(f"failed to initialize OIDC provider: missing {', '.join(missing)}")

    logger.debug("Discovered OIDC provider %s", data.get("issuer", issuer))
    return ProviderMetadata(
        issuer=data.get("issuer", issuer),
        authorization_endpoint=data["authorization_endpoint"],
        token_endpoint=data["token_endpoint"],
        revocation_endpoint=data.get("revocation_endpoint"),
    )


def _error_description(r: httpx.Response) -> str:
    """Provider error_description / error from a JSON error body, else the raw text."""
    err: Any = {}
    if r.headers.get("content-type", "").startswith("application/json"):
        try:
            err = r.json()
        except ValueError:
            err = {}
    if not isinstance(err, dict):
        err = {}
    return err.get("error_description", err.get("error", r.text)) or f"HTTP {r.status_code}"


class OAuthClient:
    """Confidential client for one provider; credentials sent in the form body."""

    def __init__(
        self,
        *,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        scopes: list[str],
        metadata: ProviderMetadata,
        http: httpx.Client,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.scopes = list(scopes)
        self.metadata = metadata
        self._http = http

    def auth_code_url(self, state: str, **extra: str) -> str:
        """Provider authorization URL carrying state plus any extra query params."""
        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "scope": " ".join(self.scopes),
            "state": state,
        }
        params.update(extra)
        endpoint = self.metadata.authorization_endpoint
        sep = "&" if "?" in endpoint else "?"
        return f"{endpoint}{sep}{urlencode(params)}"

    def _request_token(self, form: dict[str, str]) -> OAuthToken:
        """POST to the token endpoint. Error responses and unusable bodies raise ValueError."""
        form = {**form, "client_id": self.client_id, "client_secret": self.client_secret}
        r = self._http.post(
            self.metadata.token_endpoint,
            data=form,
            headers={"Accept": "application/json"},
        )
        if r.status_code != 200:
            raise ValueError(_error_description(r))
        data = r.json()
        if not isinstance(data, dict):
            raise ValueError("invalid token response")
        try:
            return OAuthToken.from_response(data)
        except (ValueError, TypeError, AttributeError) as e:
            raise ValueError(f"invalid token response: {e}") from e

    def exchange(self, code: str) -> OAuthToken:
        """Exchange an authorization code. Raises CodeExchangeError."""
        try:
            token = self._request_token(
                {
                    "grant_type": "authorization_code",
                    "code": code,
                    "redirect_uri": self.redirect_uri,
                }
            )
        except httpx.HTTPError as e:
            raise CodeExchangeError(f"token exchange failed: {e}") from e
        except ValueError as e:
            raise CodeExchangeError(str(e)) from e
        if not token.access_token:
            raise CodeExchangeError("server response missing access_token")
        return token

    def refresh(self, token: OAuthToken | None) -> OAuthToken:
        """Refresh via the refresh token. Raises TokenRefreshError (never retries)."""
        if token is None or not token.refresh_token:
            raise TokenRefreshError("token expired and refresh token is not set")
        try:
            fresh = self._request_token({"grant_type": "refresh_token", "refresh_token": token.refresh_token})
        except httpx.HTTPError as e:
            raise TokenRefreshError(f"refresh failed: {e}") from e
        except ValueError as e:
            raise TokenRefreshError(str(e)) from e
        return fresh.with_fallback_refresh(token)
