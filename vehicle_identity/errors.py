"""
Exception hierarchy for the login flow.
Construction-time failures propagate; request-time failures are rendered by the routes.
"""


class IdentityError(Exception):
    """Base class for all vehicle identity errors."""


class ProviderDiscoveryError(IdentityError):
    """Provider metadata could not be fetched or is incomplete. Fatal at construction."""


class StateValidationError(IdentityError):
    """The round-tripped state parameter was rejected."""


class StateMalformedError(StateValidationError):
    """State could not be decoded."""


class StateTamperedError(StateValidationError):
    """Authentication tag did not verify: forged, modified or minted with another secret."""


class StateExpiredError(StateValidationError):
    """State is authentic but older than the allowed window."""


class CallbackError(IdentityError):
    """Callback request cannot complete a login."""


class ProviderError(CallbackError):
    """Provider redirected back with error / error_description."""

    def __init__(self, error: str, description: str = ""):
        super().__init__(f"{error}: {description}")
        self.error = error
        self.description = description


class InvalidCallbackError(CallbackError):
    """Missing or repeated code/state parameter."""


class CodeExchangeError(IdentityError):
    """Authorization code could not be exchanged for a token."""


class TokenRefreshError(IdentityError):
    """Cached token could not be refreshed."""
