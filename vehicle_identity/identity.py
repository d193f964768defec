"""
Vehicle provider login: authorization URL with sealed state, callback validation,
code exchange, token caching and login/logout notification.

LoggedOut -> AwaitingCallback (login_url) -> LoggedIn (handle_callback);
LoggedIn -> LoggedOut on logout() or when the token source cannot refresh.
"""
import logging
from typing import Callable, Mapping, Sequence

import httpx

from vehicle_identity import state as state_token
from vehicle_identity.config import HTTP_TIMEOUT, ISSUER, SCOPES, STATE_TTL_SECONDS
from vehicle_identity.credential_store import CredentialStore
from vehicle_identity.errors import CodeExchangeError, InvalidCallbackError, ProviderError
from vehicle_identity.notifier import LoginNotifier
from vehicle_identity.oauth_token import OAuthToken
from vehicle_identity.oidc import OAuthClient, discover
from vehicle_identity.token_source import ReuseTokenSource

logger = logging.getLogger(__name__)


def _single(params: Mapping[str, Sequence[str]], name: str) -> str | None:
    values = params.get(name)
    if not values or len(values) != 1 or not values[0]:
        return None
    return values[0]


class IdentityManager:
    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        base_uri: str,
        notifier: LoginNotifier,
        *,
        issuer: str = ISSUER,
        token: OAuthToken | None = None,
        store: CredentialStore | None = None,
        http: httpx.Client | None = None,
        state_ttl: float = STATE_TTL_SECONDS,
        on_login: Callable[[], None] | None = None,
    ):
        """
        Discovers the provider (ProviderDiscoveryError is fatal), then loads or creates
        the session secret and warm-starts from token= or the store.
        """
        self._owns_http = http is None
        self._http = http or httpx.Client(timeout=HTTP_TIMEOUT)
        try:
            metadata = discover(issuer, self._http)
        except Exception:
            self.close()
            raise

        self.base_uri = base_uri
        self.notifier = notifier
        self.state_ttl = state_ttl
        self._store = store
        self._on_login = on_login
        self._client = OAuthClient(
            client_id=client_id,
            client_secret=client_secret,
            redirect_uri=redirect_uri,
            scopes=SCOPES,
            metadata=metadata,
            http=self._http,
        )
        self._ts = ReuseTokenSource(
            self._client.refresh,
            self._invalid_token,
            on_refresh=self._save_token,
        )

        secret = store.load_secret() if store else None
        if secret is None:
            secret = state_token.generate_secret()
            if store:
                store.save_secret(secret)
        self._session_secret = secret

        if token is None and store:
            token = store.load_token()
        if token is not None:
            self._ts.apply(token)
            self._save_token(token)

    def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_http:
            self._http.close()

    @property
    def logged_in(self) -> bool:
        return self._ts.has_token

    def token(self) -> OAuthToken:
        """Valid token for the vehicle API client; raises TokenRefreshError when logged out."""
        return self._ts.token()

    def _save_token(self, token: OAuthToken) -> None:
        if self._store:
            self._store.save_token(token)

    def _invalid_token(self) -> None:
        logger.info("Token invalidated, logging out")
        if self._store:
            self._store.clear_token()
        self.notifier.publish(False)

    def login_url(self) -> str:
        state = state_token.mint(self._session_secret)
        return self._client.auth_code_url(state, access_type="offline", prompt="login consent")

    def handle_callback(self, params: Mapping[str, Sequence[str]]) -> None:
        """
        Complete a login from the callback query (name -> list of values).
        Raises ProviderError, InvalidCallbackError, StateValidationError or CodeExchangeError;
        nothing changes unless every step succeeds.
        """
        if "error" in params:
            error = " ".join(params.get("error") or [])
            description = " ".join(params.get("error_description") or [])
            raise ProviderError(error, description)

        state = _single(params, "state")
        if state is None:
            raise InvalidCallbackError("invalid state response")
        state_token.validate(state, self._session_secret, ttl=self.state_ttl or None)

        code = _single(params, "code")
        if code is None:
            raise InvalidCallbackError("invalid response: missing code")

        token = self._client.exchange(code)
        if not token.valid():
            raise CodeExchangeError("received invalid token")

        self._ts.apply(token)
        self._save_token(token)
        logger.info("Login successful")
        self.notifier.publish(True)

        if self._on_login is not None:
            self._on_login()

    def logout(self) -> None:
        self._ts.apply(None)
        if self._store:
            self._store.clear_token()
        logger.info("Logged out")
        self.notifier.publish(False)
