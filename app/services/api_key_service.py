"""API key lifecycle operations for key owners.

Creation, listing, editing and deletion, scoped to the owner forwarded by
the sign-in layer. Editing is the only way usage goes down.
"""

from __future__ import annotations

import logging
import math
import secrets
import string

from app.adapters.credential_store import AbstractCredentialStore, ApiKeyRecord, KeyChanges, KeyStatus
from app.core.config import settings
from app.core.errors import NotFoundAppError, ValidationAppError
from app.core.logging import fingerprint

logger = logging.getLogger(__name__)

KEY_ALPHABET = string.ascii_letters + string.digits


def generate_api_key(prefix: str | None = None, length: int | None = None) -> str:
    """Generate a new API key: prefix followed by random alphanumerics.

    Args:
        prefix: Key prefix (default from settings, ``sk-``).
        length: Number of random characters (default from settings, 32).

    Returns:
        The new key string.
    """
    prefix = settings.app.key_prefix if prefix is None else prefix
    length = settings.app.key_length if length is None else length
    return prefix + "".join(secrets.choice(KEY_ALPHABET) for _ in range(length))


def _not_found() -> NotFoundAppError:
    return NotFoundAppError(code="api_key_not_found", message="Not found")


def _check_limit(limit: float | None) -> None:
    # NaN compares False against everything, so test finiteness first
    if limit is not None and not (math.isfinite(limit) and limit >= 1):
        raise ValidationAppError(
            code="invalid_limit",
            message="Limit must be a positive number",
            details={"field": "limit"},
        )


class ApiKeyService:
    """Owner-facing key management over a credential store."""

    def __init__(self, store: AbstractCredentialStore) -> None:
        self.store = store

    def create_key(
        self,
        owner_id: str,
        name: str | None,
        *,
        status: KeyStatus = KeyStatus.ACTIVE,
        limit: float | None = None,
    ) -> ApiKeyRecord:
        """Create a key for ``owner_id``.

        Raises:
            ValidationAppError: If the name is blank or the limit is not a finite number >= 1.
        """
        if not name or not name.strip():
            raise ValidationAppError(code="name_required", message="Name is required", details={"field": "name"})
        _check_limit(limit)

        record = self.store.create(
            name=name.strip(),
            key=generate_api_key(),
            owner_id=owner_id,
            status=status,
            limit=limit if limit is not None else settings.app.default_limit,
        )
        logger.info(
            "api_key.created",
            extra={"key_id": record.id, "key_hash": fingerprint(record.key), "limit": record.limit},
        )
        return record

    def list_keys(self, owner_id: str) -> list[ApiKeyRecord]:
        return self.store.list_for_owner(owner_id)

    def get_key(self, owner_id: str, key_id: str) -> ApiKeyRecord:
        record = self.store.get_for_owner(key_id, owner_id)
        if record is None:
            raise _not_found()
        return record

    def update_key(
        self,
        owner_id: str,
        key_id: str,
        *,
        name: str | None = None,
        status: KeyStatus | None = None,
        limit: float | None = None,
        usage: float | None = None,
    ) -> ApiKeyRecord:
        """Apply an owner edit.

        Raises:
            ValidationAppError: If the limit or usage is out of range or not finite.
            NotFoundAppError: If the key does not exist or belongs to someone else.
        """
        _check_limit(limit)
        if usage is not None and not (math.isfinite(usage) and usage >= 0):
            raise ValidationAppError(
                code="invalid_usage",
                message="Usage must be zero or a positive number",
                details={"field": "usage"},
            )

        changes = KeyChanges(
            name=name.strip() if name else None,
            status=status,
            limit=limit,
            usage=usage,
        )
        record = self.store.update_for_owner(key_id, owner_id, changes)
        if record is None:
            raise _not_found()

        logger.info(
            "api_key.updated",
            extra={
                "key_id": key_id,
                "status": record.status.value,
                "limit": record.limit,
                "usage_reset": usage is not None,
            },
        )
        return record

    def delete_key(self, owner_id: str, key_id: str) -> ApiKeyRecord:
        record = self.store.delete_for_owner(key_id, owner_id)
        if record is None:
            raise _not_found()
        logger.info("api_key.deleted", extra={"key_id": key_id})
        return record

    def is_valid(self, key: str) -> bool:
        """True if ``key`` exists and is active. Never charges usage."""
        return self.store.find_active(key) is not None
