"""Credential store interfaces.

The admission core and the key-management routes depend on this abstraction
only, so the in-memory store used by tests and the SQL store used in
deployment are interchangeable.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any


class KeyStatus(str, Enum):
    """Lifecycle state of an API key. Only active keys are admitted."""

    ACTIVE = "active"
    INACTIVE = "inactive"


@dataclass(frozen=True)
class ApiKeyRecord:
    """Snapshot of one API key row.

    Attributes:
        id: Store-assigned identifier.
        name: Owner-facing label.
        key: The secret presented in the ``x-api-key`` header.
        status: Whether the key may be admitted.
        usage: Quota units consumed so far (``None`` is read as 0).
        limit: Maximum cumulative usage (``None`` is read as the default limit).
        owner_id: Identity of the user that created the key.
        created_at: Creation time (UTC).
    """

    id: str
    name: str
    key: str
    status: KeyStatus
    usage: float | None
    limit: float | None
    owner_id: str
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "key": self.key,
            "status": self.status.value,
            "usage": self.usage,
            "limit": self.limit,
            "owner_id": self.owner_id,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class KeyChanges:
    """Owner edit applied by ``update_for_owner``; ``None`` fields are left as is."""

    name: str | None = None
    status: KeyStatus | None = None
    limit: float | None = None
    usage: float | None = None

    def __post_init__(self) -> None:
        if self.limit is not None and not (math.isfinite(self.limit) and self.limit >= 1):
            raise ValueError("limit must be a finite number >= 1")
        if self.usage is not None and not (math.isfinite(self.usage) and self.usage >= 0):
            raise ValueError("usage must be a finite number >= 0")


class AbstractCredentialStore(ABC):
    """Interface for API key storage.

    Implementations raise ``CredentialStoreError`` when the backend is
    unavailable; lookups that simply find nothing return ``None``.
    """

    @abstractmethod
    def find_active(self, key: str) -> ApiKeyRecord | None:
        """Return the record whose key matches and whose status is active."""
        raise NotImplementedError

    @abstractmethod
    def find_by_key(self, key: str) -> ApiKeyRecord | None:
        """Return the record whose key matches, whatever its status."""
        raise NotImplementedError

    @abstractmethod
    def increment_usage(self, key: str, cost: float, *, default_limit: float) -> float | None:
        """Atomically add ``cost`` to usage if the key is active and stays within its limit.

        The check and the write happen as one operation, so concurrent callers
        can never push usage past the limit.

        Args:
            key: API key to charge.
            cost: Positive number of units to add.
            default_limit: Limit assumed for rows that have none.

        Returns:
            The post-increment usage, or ``None`` if no row matched (unknown or
            inactive key, or not enough remaining quota).
        """
        raise NotImplementedError

    @abstractmethod
    def create(
        self,
        *,
        name: str,
        key: str,
        owner_id: str,
        status: KeyStatus = KeyStatus.ACTIVE,
        limit: float,
    ) -> ApiKeyRecord:
        raise NotImplementedError

    @abstractmethod
    def list_for_owner(self, owner_id: str) -> list[ApiKeyRecord]:
        """Return the owner's keys, newest first."""
        raise NotImplementedError

    @abstractmethod
    def get_for_owner(self, key_id: str, owner_id: str) -> ApiKeyRecord | None:
        raise NotImplementedError

    @abstractmethod
    def update_for_owner(self, key_id: str, owner_id: str, changes: KeyChanges) -> ApiKeyRecord | None:
        raise NotImplementedError

    @abstractmethod
    def delete_for_owner(self, key_id: str, owner_id: str) -> ApiKeyRecord | None:
        raise NotImplementedError

    def close(self) -> None:
        """Release backend resources. No-op by default."""
