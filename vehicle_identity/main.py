"""
Vehicle identity app: mounts the login routes under /providerauth.
Port 7070; provider credentials from the environment (see config.py).
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from vehicle_identity.config import (
    BASE_URI,
    CLIENT_ID,
    CLIENT_SECRET,
    NOTIFY_QUEUE_SIZE,
    REDIRECT_URI,
)
from vehicle_identity.credential_store import CredentialStore
from vehicle_identity.database import SessionLocal, init_db
from vehicle_identity.identity import IdentityManager
from vehicle_identity.notifier import LoginNotifier
from vehicle_identity.routes import router


def create_identity(notifier: LoginNotifier) -> IdentityManager:
    """Identity from environment configuration, persisted in the credential store."""
    init_db()
    store = CredentialStore(SessionLocal, name=CLIENT_ID or "default")
    return IdentityManager(
        CLIENT_ID,
        CLIENT_SECRET,
        REDIRECT_URI,
        BASE_URI,
        notifier,
        store=store,
    )


def create_app(identity: IdentityManager | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Discover the provider and load credentials on startup unless injected."""
        owned = getattr(app.state, "identity", None) is None
        if owned:
            app.state.identity = create_identity(app.state.notifier)
        yield
        if owned:
            app.state.identity.close()

    app = FastAPI(title="Vehicle Identity", version="0.1.0", lifespan=lifespan)
    if identity is not None:
        app.state.notifier = identity.notifier
        app.state.identity = identity
    else:
        app.state.notifier = LoginNotifier(NOTIFY_QUEUE_SIZE)
        app.state.identity = None
    app.include_router(router, prefix="/providerauth", tags=["providerauth"])

    @app.get("/health")
    def health(request: Request):
        """Health check endpoint."""
        current = request.app.state.identity
        return {
            "status": "ok",
            "service": "vehicle_identity",
            "loggedIn": bool(current and current.logged_in),
        }

    return app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "vehicle_identity.main:create_app",
        factory=True,
        host="127.0.0.1",
        port=7070,
    )
