"""SQLAlchemy-backed credential store.

Every public method runs in its own short session. Backend failures surface
as ``CredentialStoreError`` so callers never handle driver exceptions.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.adapters.credential_store.base import (
    AbstractCredentialStore,
    ApiKeyRecord,
    KeyChanges,
    KeyStatus,
)
from app.core.errors import CredentialStoreError
from app.models.api_key import ApiKey

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_record(row: ApiKey) -> ApiKeyRecord:
    return ApiKeyRecord(
        id=row.id,
        name=row.name,
        key=row.key,
        status=KeyStatus(row.status),
        usage=row.usage,
        limit=row.limit,
        owner_id=row.owner_id,
        created_at=_as_utc(row.created_at),
    )


class SQLCredentialStore(AbstractCredentialStore):
    """Credential store over the ``api_keys`` table."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    @contextmanager
    def _session(self, operation: str) -> Iterator[Session]:
        try:
            with self._session_factory() as session:
                yield session
        except SQLAlchemyError as exc:
            logger.error(
                "credential_store.operation_failed",
                extra={"operation": operation, "error_type": type(exc).__name__},
            )
            raise CredentialStoreError(
                code="credential_store_unavailable",
                message="Credential store operation failed",
                details={"operation": operation},
            ) from exc

    def find_active(self, key: str) -> ApiKeyRecord | None:
        with self._session("find_active") as session:
            row = session.scalars(
                select(ApiKey).where(ApiKey.key == key, ApiKey.status == KeyStatus.ACTIVE.value)
            ).one_or_none()
            return _to_record(row) if row is not None else None

    def find_by_key(self, key: str) -> ApiKeyRecord | None:
        with self._session("find_by_key") as session:
            row = session.scalars(select(ApiKey).where(ApiKey.key == key)).one_or_none()
            return _to_record(row) if row is not None else None

    def increment_usage(self, key: str, cost: float, *, default_limit: float) -> float | None:
        current_usage = func.coalesce(ApiKey.usage, 0)
        stmt = (
            update(ApiKey)
            .where(
                ApiKey.key == key,
                ApiKey.status == KeyStatus.ACTIVE.value,
                current_usage + cost <= func.coalesce(ApiKey.limit, default_limit),
            )
            .values(usage=current_usage + cost)
            .returning(ApiKey.usage)
            .execution_options(synchronize_session=False)
        )
        with self._session("increment_usage") as session:
            new_usage = session.execute(stmt).scalar_one_or_none()
            session.commit()
            return new_usage

    def create(
        self,
        *,
        name: str,
        key: str,
        owner_id: str,
        status: KeyStatus = KeyStatus.ACTIVE,
        limit: float,
    ) -> ApiKeyRecord:
        with self._session("create") as session:
            row = ApiKey(
                name=name,
                key=key,
                owner_id=owner_id,
                status=status.value,
                usage=0,
                limit=limit,
                created_at=datetime.now(timezone.utc),
            )
            session.add(row)
            session.commit()
            return _to_record(row)

    def list_for_owner(self, owner_id: str) -> list[ApiKeyRecord]:
        with self._session("list_for_owner") as session:
            rows = session.scalars(
                select(ApiKey).where(ApiKey.owner_id == owner_id).order_by(ApiKey.created_at.desc())
            ).all()
            return [_to_record(row) for row in rows]

    def _owned_row(self, session: Session, key_id: str, owner_id: str) -> ApiKey | None:
        return session.scalars(
            select(ApiKey).where(ApiKey.id == key_id, ApiKey.owner_id == owner_id)
        ).one_or_none()

    def get_for_owner(self, key_id: str, owner_id: str) -> ApiKeyRecord | None:
        with self._session("get_for_owner") as session:
            row = self._owned_row(session, key_id, owner_id)
            return _to_record(row) if row is not None else None

    def update_for_owner(self, key_id: str, owner_id: str, changes: KeyChanges) -> ApiKeyRecord | None:
        with self._session("update_for_owner") as session:
            row = self._owned_row(session, key_id, owner_id)
            if row is None:
                return None
            if changes.name is not None:
                row.name = changes.name
            if changes.status is not None:
                row.status = changes.status.value
            if changes.limit is not None:
                row.limit = changes.limit
            if changes.usage is not None:
                row.usage = changes.usage
            session.commit()
            return _to_record(row)

    def delete_for_owner(self, key_id: str, owner_id: str) -> ApiKeyRecord | None:
        with self._session("delete_for_owner") as session:
            row = self._owned_row(session, key_id, owner_id)
            if row is None:
                return None
            record = _to_record(row)
            session.delete(row)
            session.commit()
            return record

    def close(self) -> None:
        bind = self._session_factory.kw.get("bind")
        if bind is not None:
            bind.dispose()
