"""In-memory credential store.

Notes:
- Per-process only: nothing survives a restart.
- Thread-safe: one lock guards every read and write, which also makes the
  increment-with-ceiling atomic.
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable

from app.adapters.credential_store.base import (
    AbstractCredentialStore,
    ApiKeyRecord,
    KeyChanges,
    KeyStatus,
)


class InMemoryCredentialStore(AbstractCredentialStore):
    """Dictionary-backed store keyed by record id."""

    def __init__(self, *, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = threading.RLock()
        self._records: dict[str, ApiKeyRecord] = {}

    def _by_key(self, key: str) -> ApiKeyRecord | None:
        for record in self._records.values():
            if record.key == key:
                return record
        return None

    def add(self, record: ApiKeyRecord) -> ApiKeyRecord:
        """Insert a fully-formed record (fixtures and seeding)."""
        with self._lock:
            if self._by_key(record.key) is not None:
                raise ValueError("key already exists")
            self._records[record.id] = record
            return record

    def find_active(self, key: str) -> ApiKeyRecord | None:
        with self._lock:
            record = self._by_key(key)
            if record is None or record.status is not KeyStatus.ACTIVE:
                return None
            return record

    def find_by_key(self, key: str) -> ApiKeyRecord | None:
        with self._lock:
            return self._by_key(key)

    def increment_usage(self, key: str, cost: float, *, default_limit: float) -> float | None:
        with self._lock:
            record = self._by_key(key)
            if record is None or record.status is not KeyStatus.ACTIVE:
                return None

            usage = record.usage or 0
            limit = record.limit or default_limit
            if usage + cost > limit:
                return None

            updated = replace(record, usage=usage + cost)
            self._records[record.id] = updated
            return updated.usage

    def create(
        self,
        *,
        name: str,
        key: str,
        owner_id: str,
        status: KeyStatus = KeyStatus.ACTIVE,
        limit: float,
    ) -> ApiKeyRecord:
        record = ApiKeyRecord(
            id=str(uuid.uuid4()),
            name=name,
            key=key,
            status=status,
            usage=0,
            limit=limit,
            owner_id=owner_id,
            created_at=self._clock(),
        )
        return self.add(record)

    def list_for_owner(self, owner_id: str) -> list[ApiKeyRecord]:
        with self._lock:
            owned = [r for r in self._records.values() if r.owner_id == owner_id]
        return sorted(owned, key=lambda r: r.created_at, reverse=True)

    def get_for_owner(self, key_id: str, owner_id: str) -> ApiKeyRecord | None:
        with self._lock:
            record = self._records.get(key_id)
            if record is None or record.owner_id != owner_id:
                return None
            return record

    def update_for_owner(self, key_id: str, owner_id: str, changes: KeyChanges) -> ApiKeyRecord | None:
        with self._lock:
            record = self.get_for_owner(key_id, owner_id)
            if record is None:
                return None
            updated = replace(
                record,
                name=changes.name if changes.name is not None else record.name,
                status=changes.status if changes.status is not None else record.status,
                limit=changes.limit if changes.limit is not None else record.limit,
                usage=changes.usage if changes.usage is not None else record.usage,
            )
            self._records[key_id] = updated
            return updated

    def delete_for_owner(self, key_id: str, owner_id: str) -> ApiKeyRecord | None:
        with self._lock:
            record = self.get_for_owner(key_id, owner_id)
            if record is None:
                return None
            return self._records.pop(key_id)
