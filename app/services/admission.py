"""Admission control: API key validation, quota check and usage accounting.

``AdmissionController.check_rate_limit`` decides whether one request may
proceed and, when it may, charges its cost against the key's usage exactly
once. It never raises for store failures: every outcome is one of the
result types below, and the HTTP layer maps them to responses.

Decision sequence for ``check_rate_limit(key, cost)``:
1. Look up the active record for ``key``; missing -> InvalidOrInactiveKey.
2. ``usage + cost > limit`` -> RateLimitExceeded (nothing is written).
3. Charge the cost with the store's atomic increment-with-ceiling. If no row
   matched (a concurrent request used the remaining quota, or the key was
   deactivated in between) the record is re-read to report which.
4. Store failure while charging -> UsageUpdateFailed; the request is not
   admitted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import ClassVar, Union

from app.adapters.credential_store.base import AbstractCredentialStore, KeyStatus
from app.core.config import settings
from app.core.errors import CredentialStoreError
from app.core.logging import fingerprint

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdmissionGranted:
    """The request was admitted and ``usage`` already includes its cost."""

    usage: float
    limit: float

    admitted: ClassVar[bool] = True

    @property
    def remaining(self) -> float:
        return max(0.0, self.limit - self.usage)


@dataclass(frozen=True)
class InvalidOrInactiveKey:
    code: ClassVar[str] = "invalid_or_inactive_key"
    error: ClassVar[str] = "Invalid or inactive API key"
    admitted: ClassVar[bool] = False


@dataclass(frozen=True)
class RateLimitExceeded:
    """Admitting the request would push usage past the limit."""

    usage: float
    limit: float

    code: ClassVar[str] = "rate_limit_exceeded"
    error: ClassVar[str] = "Rate limit exceeded"
    admitted: ClassVar[bool] = False


@dataclass(frozen=True)
class UsageUpdateFailed:
    """The quota check passed but the charge could not be persisted."""

    code: ClassVar[str] = "usage_update_failed"
    error: ClassVar[str] = "Failed to update usage tracking"
    admitted: ClassVar[bool] = False


@dataclass(frozen=True)
class RateLimitCheckFailed:
    """The key could not be looked up because the store failed."""

    code: ClassVar[str] = "rate_limit_check_failed"
    error: ClassVar[str] = "Rate limiting check failed"
    admitted: ClassVar[bool] = False


AdmissionDenied = Union[InvalidOrInactiveKey, RateLimitExceeded, UsageUpdateFailed, RateLimitCheckFailed]
AdmissionResult = Union[AdmissionGranted, AdmissionDenied]


class AdmissionController:
    """Validates API keys and charges quota against a credential store.

    Attributes:
        store: Backend holding API key records.
        default_limit: Limit applied to records that carry none.
    """

    def __init__(self, store: AbstractCredentialStore, *, default_limit: float | None = None) -> None:
        self.store = store
        self.default_limit = default_limit if default_limit is not None else settings.app.default_limit

    def check_rate_limit(self, key: str, cost: float = 1, *, endpoint: str | None = None) -> AdmissionResult:
        """Admit or reject one request for ``key`` costing ``cost`` units.

        Args:
            key: API key presented by the caller.
            cost: Quota units charged if admitted (default 1).
            endpoint: Endpoint name, used for logging only.

        Returns:
            AdmissionGranted with the post-increment usage, or one of the
            denial results.

        Raises:
            ValueError: If key is empty or cost is not positive.
        """
        if not key:
            raise ValueError("key must be a non-empty string")
        if cost <= 0:
            raise ValueError("cost must be > 0")

        log_ctx = {"key_hash": fingerprint(key), "endpoint": endpoint, "cost": cost}

        try:
            record = self.store.find_active(key)
        except CredentialStoreError:
            logger.error("admission.lookup_failed", extra=log_ctx)
            return RateLimitCheckFailed()

        if record is None:
            logger.warning("admission.invalid_key", extra=log_ctx)
            return InvalidOrInactiveKey()

        usage = record.usage or 0
        limit = record.limit or self.default_limit

        if usage + cost > limit:
            logger.warning("admission.rate_limited", extra={**log_ctx, "usage": usage, "limit": limit})
            return RateLimitExceeded(usage=usage, limit=limit)

        try:
            new_usage = self.store.increment_usage(key, cost, default_limit=self.default_limit)
        except CredentialStoreError:
            logger.error("admission.usage_update_failed", extra={**log_ctx, "usage": usage, "limit": limit})
            return UsageUpdateFailed()

        if new_usage is None:
            return self._explain_lost_race(key, cost, log_ctx)

        logger.info("admission.granted", extra={**log_ctx, "usage": new_usage, "limit": limit})
        return AdmissionGranted(usage=new_usage, limit=limit)

    def _explain_lost_race(self, key: str, cost: float, log_ctx: dict) -> AdmissionDenied:
        """Classify a conditional update that matched no row."""
        try:
            record = self.store.find_by_key(key)
        except CredentialStoreError:
            logger.error("admission.usage_update_failed", extra=log_ctx)
            return UsageUpdateFailed()

        if record is None or record.status is not KeyStatus.ACTIVE:
            logger.warning("admission.invalid_key", extra={**log_ctx, "race": True})
            return InvalidOrInactiveKey()

        usage = record.usage or 0
        limit = record.limit or self.default_limit
        logger.warning("admission.rate_limited", extra={**log_ctx, "usage": usage, "limit": limit, "race": True})
        return RateLimitExceeded(usage=usage, limit=limit)
