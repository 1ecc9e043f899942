"""ORM mapping for the ``api_keys`` table."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Float, Index, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class ApiKey(Base):
    """API key with its quota counter.

    Attributes:
        id: Primary key (UUID string).
        name: Owner-facing label.
        key: Secret presented by callers; unique.
        status: ``active`` or ``inactive``.
        usage: Units consumed; only grows on the admission path.
        limit: Maximum cumulative usage.
        owner_id: Identity of the creating user.
        created_at: Creation timestamp (UTC).
    """

    __tablename__ = "api_keys"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    key: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="active")
    usage: Mapped[float | None] = mapped_column(Float, nullable=True, default=0)
    limit: Mapped[float | None] = mapped_column(Float, nullable=True, default=1000)
    owner_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (Index("ix_api_keys_key_status", "key", "status"),)

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"ApiKey(id={self.id!r}, name={self.name!r}, status={self.status!r})"
