"""
SQLAlchemy models for persisted identity credentials (session secret + token).
"""
from datetime import datetime, timezone

from sqlalchemy import DateTime, LargeBinary, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class IdentityCredential(Base):
    """One row per identity (keyed by client id / vehicle). Secret never leaves the process otherwise."""
    __tablename__ = "identity_credentials"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    session_secret: Mapped[bytes | None] = mapped_column(LargeBinary, nullable=True)
    access_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    refresh_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    token_type: Mapped[str | None] = mapped_column(String(32), nullable=True)
    expiry: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)  # naive UTC
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now, onupdate=_utc_now)
