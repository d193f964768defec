"""
Durable store for an identity's session secret and token, so login URLs and the
login itself survive a restart.
"""
import logging
from datetime import timezone

from sqlalchemy.orm import Session, sessionmaker

from vehicle_identity.models import IdentityCredential
from vehicle_identity.oauth_token import OAuthToken

logger = logging.getLogger(__name__)


class CredentialStore:
    def __init__(self, session_factory: sessionmaker, name: str):
        self._session_factory = session_factory
        self.name = name

    def _row(self, db: Session, create: bool = False) -> IdentityCredential | None:
        row = db.query(IdentityCredential).filter(IdentityCredential.name == self.name).first()
        if row is None and create:
            row = IdentityCredential(name=self.name)
            db.add(row)
        return row

    def load_secret(self) -> bytes | None:
        db = self._session_factory()
        try:
            row = self._row(db)
            return row.session_secret if row else None
        finally:
            db.close()

    def save_secret(self, secret: bytes) -> None:
        db = self._session_factory()
        try:
            self._row(db, create=True).session_secret = secret
            db.commit()
        finally:
            db.close()

    def load_token(self) -> OAuthToken | None:
        db = self._session_factory()
        try:
            row = self._row(db)
            if row is None or not row.access_token:
                return None
            expiry = row.expiry.replace(tzinfo=timezone.utc) if row.expiry else None
            return OAuthToken(
                access_token=row.access_token,
                refresh_token=row.refresh_token or "",
                token_type=row.token_type or "Bearer",
                expiry=expiry,
            )
        finally:
            db.close()

    def save_token(self, token: OAuthToken) -> None:
        db = self._session_factory()
        try:
            row = self._row(db, create=True)
            row.access_token = token.access_token
            row.refresh_token = token.refresh_token
            row.token_type = token.token_type
            row.expiry = token.expiry.astimezone(timezone.utc).replace(tzinfo=None) if token.expiry else None
            db.commit()
            logger.debug("Saved token for %s", self.name)
        finally:
            db.close()

    def clear_token(self) -> None:
        db = self._session_factory()
        try:
            row = self._row(db)
            if row is not None:
                row.access_token = None
                row.refresh_token = None
                row.token_type = None
                row.expiry = None
                db.commit()
        finally:
            db.close()
