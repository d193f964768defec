"""
HTTP handlers for the provider login: GET /login, /callback, /logout.
Request-time failures are rendered as plain text (200, no redirect); nothing is retried.
"""
import logging
from urllib.parse import parse_qs

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse, RedirectResponse, Response

from vehicle_identity.errors import CallbackError, CodeExchangeError, ProviderError, StateValidationError
from vehicle_identity.identity import IdentityManager

logger = logging.getLogger(__name__)
router = APIRouter()


def get_identity(request: Request) -> IdentityManager:
    """Dependency: the identity owned by the app (set at startup)."""
    return request.app.state.identity


@router.get("/login")
def login(identity: IdentityManager = Depends(get_identity)):
    """Authorization URL for the browser to open."""
    return {"loginUri": identity.login_url()}


@router.get("/callback")
def callback(request: Request, identity: IdentityManager = Depends(get_identity)):
    """
    Redirect target of the provider. Success: 302 to the base URI.
    Failure: 200 with the diagnostic as text; no login happens.
    """
    logger.debug("callback request retrieved")
    params = parse_qs(request.url.query, keep_blank_values=False)

    try:
        identity.handle_callback(params)
    except ProviderError as e:
        logger.info("Provider returned error %s", e.error)
        return PlainTextResponse(f"error: {e.error}: {e.description}\n")
    except StateValidationError as e:
        logger.warning("State validation failed: %s", e)
        return PlainTextResponse(f"failed state validation: {e}")
    except CallbackError as e:
        return PlainTextResponse(f"{e}\n")
    except CodeExchangeError as e:
        logger.warning("Code exchange failed: %s", e)
        return PlainTextResponse(f"token error: {e}\n")

    return RedirectResponse(url=identity.base_uri, status_code=302)


@router.get("/logout")
def logout(identity: IdentityManager = Depends(get_identity)):
    identity.logout()
    return Response(status_code=200)
