"""
Self-certifying OAuth state parameter (CSRF protection on the callback).

A state is a random payload plus its issuance time, sealed with AES-GCM under the
per-instance session secret. Nothing is stored server-side: a state validates iff it
was minted with the same secret and was not modified. Single use of the authorization
code is enforced by the provider, not here.
"""
import base64
import binascii
import os
import secrets
import struct
import time

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from vehicle_identity.errors import StateExpiredError, StateMalformedError, StateTamperedError

SECRET_SIZE = 16

_NONCE_SIZE = 12
_RANDOM_SIZE = 16
_TAG_SIZE = 16
_PAYLOAD = struct.Struct(f">{_RANDOM_SIZE}sQ")
_TOKEN_SIZE = _NONCE_SIZE + _PAYLOAD.size + _TAG_SIZE
_AAD = b"vehicle-identity/state/v1"

# Tolerated issuer/validator clock difference for states "from the future"
_CLOCK_SKEW = 60


def generate_secret(size: int = SECRET_SIZE) -> bytes:
    """Fresh random session secret (AES key: 16, 24 or 32 bytes)."""
    return secrets.token_bytes(size)


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64url_decode(value: str) -> bytes:
    """Strict decode: rejects padding, foreign characters and non-canonical trailing bits."""
    try:
        raw = base64.urlsafe_b64decode(value + "=" * (-len(value) % 4))
    except (binascii.Error, ValueError) as e:
        raise StateMalformedError(f"invalid encoding: {e}") from e
    if _b64url_encode(raw) != value:
        raise StateMalformedError("invalid encoding")
    return raw


def mint(secret: bytes, *, now: float | None = None) -> str:
    """Create a new URL-safe state string sealed with secret."""
    issued_at = int(time.time() if now is None else now)
    nonce = os.urandom(_NONCE_SIZE)
    payload = _PAYLOAD.pack(secrets.token_bytes(_RANDOM_SIZE), issued_at)
    sealed = AESGCM(secret).encrypt(nonce, payload, _AAD)
    return _b64url_encode(nonce + sealed)


def validate(token: str, secret: bytes, *, ttl: float | None = None, now: float | None = None) -> None:
    """
    Check that token was minted with secret and not modified.
    When ttl (seconds) is given, also reject states older than ttl.
    Raises StateMalformedError, StateTamperedError or StateExpiredError.
    """
    if not isinstance(token, str) or not token:
        raise StateMalformedError("empty state")
    raw = _b64url_decode(token)
    if len(raw) != _TOKEN_SIZE:
        raise StateMalformedError(f"invalid length {len(raw)}")

    nonce, sealed = raw[:_NONCE_SIZE], raw[_NONCE_SIZE:]
    try:
        payload = AESGCM(secret).decrypt(nonce, sealed, _AAD)
    except InvalidTag:
        raise StateTamperedError("state tampered or forged") from None

    _, issued_at = _PAYLOAD.unpack(payload)
    if ttl:
        current = time.time() if now is None else now
        if current - issued_at > ttl:
            raise StateExpiredError(f"state expired ({int(current - issued_at)}s old)")
        if issued_at - current > _CLOCK_SKEW:
            raise StateExpiredError("state issued in the future")
