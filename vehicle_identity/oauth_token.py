"""
OAuth token held by the token source: access token, refresh token and absolute expiry.
"""
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Any

# Treat tokens as expired slightly early so in-flight requests don't race the expiry
DEFAULT_LEEWAY = timedelta(seconds=10)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class OAuthToken:
    access_token: str
    refresh_token: str = ""
    token_type: str = "Bearer"
    expiry: datetime | None = None  # None: provider did not say; never expires locally

    def valid(self, leeway: timedelta = DEFAULT_LEEWAY, now: datetime | None = None) -> bool:
        """
        True if there is an access token and it does not expire within leeway.
        """
        if not self.access_token:
            return False
        if self.expiry is None:
            return True
        return (now or _utc_now()) + leeway < self.expiry

    def with_fallback_refresh(self, previous: "OAuthToken | None") -> "OAuthToken":
        """Keep the previous refresh token when a refresh response omits it."""
        if self.refresh_token or previous is None or not previous.refresh_token:
            return self
        return replace(self, refresh_token=previous.refresh_token)

    @classmethod
    def from_response(cls, data: dict[str, Any], now: datetime | None = None) -> "OAuthToken":
        """Build from a token endpoint JSON body (expires_in is relative)."""
        expiry = None
        expires_in = data.get("expires_in")
        if expires_in not in (None, "", 0, "0"):
            expiry = (now or _utc_now()) + timedelta(seconds=int(expires_in))
        return cls(
            access_token=data.get("access_token") or "",
            refresh_token=data.get("refresh_token") or "",
            token_type=data.get("token_type") or "Bearer",
            expiry=expiry,
        )

