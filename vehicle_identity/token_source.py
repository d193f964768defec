"""
Token source that reuses the cached token until it expires, then refreshes it.
A failed refresh clears the cache and fires the invalidation callback once.
"""
import logging
import threading
from datetime import timedelta
from typing import Callable

from vehicle_identity.errors import TokenRefreshError
from vehicle_identity.oauth_token import DEFAULT_LEEWAY, OAuthToken

logger = logging.getLogger(__name__)

Refresher = Callable[[OAuthToken | None], OAuthToken]


class ReuseTokenSource:
    """
    Thread-safe holder of the single live token.

    refresher(current) returns a new token or raises TokenRefreshError; it is called
    with None when nothing is cached. on_invalid runs outside the lock, at most once
    per transition from "has token" to "no valid token". on_refresh receives every
    refreshed token (e.g. to persist it).
    """

    def __init__(
        self,
        refresher: Refresher,
        on_invalid: Callable[[], None] | None = None,
        *,
        on_refresh: Callable[[OAuthToken], None] | None = None,
        leeway: timedelta = DEFAULT_LEEWAY,
    ):
        self._refresher = refresher
        self._on_invalid = on_invalid
        self._on_refresh = on_refresh
        self._leeway = leeway
        self._lock = threading.Lock()
        self._token: OAuthToken | None = None
        # Starts logged out: no transition to report
        self._invalidated = True

    def apply(self, token: OAuthToken | None) -> None:
        """Replace the cached token; None clears it (logout)."""
        with self._lock:
            self._token = token
            self._invalidated = token is None

    @property
    def has_token(self) -> bool:
        with self._lock:
            return self._token is not None

    def token(self) -> OAuthToken:
        """
        Return a valid token, refreshing if the cached one is missing or expiring.
        Raises TokenRefreshError after clearing the cache.
        """
        error: TokenRefreshError | None = None
        notify = False
        with self._lock:
            current = self._token
            if current is not None and current.valid(self._leeway):
                return current
            try:
                fresh = self._refresh(current)
            except TokenRefreshError as e:
                error = e
                self._token = None
                notify = not self._invalidated
                self._invalidated = True
            else:
                self._token = fresh
                self._invalidated = False

        if error is not None:
            # Outside the lock: the callback may call back into apply()
            if notify and self._on_invalid is not None:
                self._on_invalid()
            raise error

        if self._on_refresh is not None:
            self._on_refresh(fresh)
        return fresh

    def _refresh(self, current: OAuthToken | None) -> OAuthToken:
        try:
            fresh = self._refresher(current)
        except TokenRefreshError as e:
            logger.warning("Token refresh failed: %s", e)
            raise
        if not fresh.valid(self._leeway):
            raise TokenRefreshError("refreshed token is not valid")
        logger.debug("Token refreshed")
        return fresh.with_fallback_refresh(current)
