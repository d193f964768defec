"""
Vehicle identity configuration. Values come from the environment; no secrets in this file.
"""
import os

# Identity provider (issuer) used for OIDC discovery
ISSUER = os.environ.get("MB_ISSUER", "https://id.mercedes-benz.com").rstrip("/")

# Client credentials registered with the vehicle provider
CLIENT_ID = os.environ.get("MB_CLIENT_ID", "")
CLIENT_SECRET = os.environ.get("MB_CLIENT_SECRET", "")

# Callback URL the provider redirects to after authorization
REDIRECT_URI = os.environ.get("MB_REDIRECT_URI", "http://127.0.0.1:7070/providerauth/callback")

# Where the browser lands after a successful login
BASE_URI = os.environ.get("MB_BASE_URI", "http://127.0.0.1:7070/")

# Offline access for a refresh token + EV status telemetry
SCOPES = ["offline_access", "mb:vehicle:mbdata:evstatus"]

# Credential store (session secret + token). In-memory SQLite for tests.
DATABASE_URL = os.environ.get("IDENTITY_DATABASE_URL", "sqlite:///./vehicle_identity.db")

# Lifetime of a minted state parameter (seconds); 0 disables the age check
STATE_TTL_SECONDS = int(os.environ.get("STATE_TTL_SECONDS", "600"))

# Upper bound for every call to the identity provider (seconds)
HTTP_TIMEOUT = float(os.environ.get("HTTP_TIMEOUT", "10"))

# Pending login/logout events kept for a slow subscriber before the oldest is dropped
NOTIFY_QUEUE_SIZE = int(os.environ.get("NOTIFY_QUEUE_SIZE", "8"))
