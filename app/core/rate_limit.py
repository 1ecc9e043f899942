"""Quota-metered endpoints for FastAPI routes.

``with_rate_limit`` wraps a handler ``async (request, granted) -> payload``
into a FastAPI endpoint ``async (request) -> JSONResponse`` that:

1. reads the API key from the ``x-api-key`` header (400 when missing),
2. asks the admission controller to admit and charge the request,
3. short-circuits with an error envelope when admission is denied,
4. otherwise runs the handler and merges ``usage``/``limit`` into its JSON.

The handler never runs without a successful admission for that request.

Usage:
    @router.post("/summarize")
    @with_rate_limit(RateLimitConfig(endpoint="summarize", increment_by=EndpointTier.HEAVY))
    async def summarize(request: Request, granted: AdmissionGranted) -> dict:
        return {"success": True}
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Any, Awaitable, Callable, Mapping

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app.adapters.credential_store import AbstractCredentialStore, create_credential_store
from app.core.config import settings
from app.services.admission import (
    AdmissionController,
    AdmissionDenied,
    AdmissionGranted,
    InvalidOrInactiveKey,
    RateLimitExceeded,
)

logger = logging.getLogger(__name__)

API_KEY_REQUIRED = "API key is required"


class EndpointTier(float, Enum):
    """Common per-request costs."""

    LIGHTWEIGHT = 0.5  # status checks, simple queries
    STANDARD = 1.0  # data processing, CRUD
    HEAVY = 5.0  # AI processing, complex calculations
    PREMIUM = 10.0  # very resource-intensive operations


@dataclass(frozen=True)
class RateLimitConfig:
    """How a wrapped endpoint is metered.

    Attributes:
        endpoint: Name used in logs.
        increment_by: Units charged per admitted request (default 1).
    """

    endpoint: str
    increment_by: float = 1

    def __post_init__(self) -> None:
        if not self.endpoint:
            raise ValueError("endpoint must be a non-empty string")
        if float(self.increment_by) <= 0:
            raise ValueError("increment_by must be > 0")

    @property
    def cost(self) -> float:
        return float(self.increment_by)


RateLimitedHandler = Callable[[Request, AdmissionGranted], Awaitable[Any]]


_controller: AdmissionController | None = None


def get_admission_controller() -> AdmissionController:
    """Return the process-wide admission controller.

    Built lazily from settings on first use so importing routes never opens
    a database connection.
    """

    global _controller
    if _controller is None:
        _controller = AdmissionController(create_credential_store())
    return _controller


def set_credential_store(store: AbstractCredentialStore | None) -> None:
    """Replace the store used by metered endpoints (``None`` rebuilds from settings)."""

    global _controller
    if _controller is not None and (store is None or store is not _controller.store):
        _controller.store.close()
    _controller = AdmissionController(store) if store is not None else None


def get_credential_store() -> AbstractCredentialStore:
    return get_admission_controller().store


def _quota_headers(usage: float, limit: float) -> dict[str, str]:
    if not settings.app.rate_limit_include_headers:
        return {}
    return {
        "X-RateLimit-Limit": _format_number(limit),
        "X-RateLimit-Remaining": _format_number(max(0.0, limit - usage)),
    }


def _as_number(value: float) -> int | float:
    """Render whole quota amounts as ints (``1`` rather than ``1.0``)."""
    return int(value) if float(value).is_integer() else value


def _format_number(value: float) -> str:
    return str(_as_number(value))


def denial_status(result: AdmissionDenied) -> int:
    """Map a denial to its HTTP status code."""

    if isinstance(result, RateLimitExceeded):
        return status.HTTP_429_TOO_MANY_REQUESTS
    if isinstance(result, InvalidOrInactiveKey):
        return status.HTTP_401_UNAUTHORIZED
    return settings.app.accounting_failure_status


def denial_response(result: AdmissionDenied) -> JSONResponse:
    """Build the error envelope for a denied admission."""

    content: dict[str, Any] = {"success": False, "error": result.error}
    headers: dict[str, str] = {}
    if isinstance(result, RateLimitExceeded):
        content["usage"] = _as_number(result.usage)
        content["limit"] = _as_number(result.limit)
        headers = _quota_headers(result.usage, result.limit)
    return JSONResponse(status_code=denial_status(result), content=content, headers=headers or None)


def rate_limited_response(
    data: Mapping[str, Any] | BaseModel,
    granted: AdmissionGranted,
    *,
    status_code: int = status.HTTP_200_OK,
) -> JSONResponse:
    """Return ``data`` as JSON with the caller's ``usage`` and ``limit`` merged in."""

    payload = data.model_dump(mode="json") if isinstance(data, BaseModel) else dict(data)
    payload["usage"] = _as_number(granted.usage)
    payload["limit"] = _as_number(granted.limit)
    return JSONResponse(
        status_code=status_code,
        content=payload,
        headers=_quota_headers(granted.usage, granted.limit) or None,
    )


def _merge_into_response(response: Response, granted: AdmissionGranted) -> Response:
    """Merge quota metadata into a handler-built JSON response."""

    if response.media_type != "application/json":
        return response
    body = json.loads(response.body)
    if not isinstance(body, dict):
        return response
    merged = rate_limited_response(body, granted, status_code=response.status_code)
    for name, value in response.headers.items():
        if name.lower() not in ("content-length", "content-type"):
            merged.headers.setdefault(name, value)
    return merged


def _wrap(handler: RateLimitedHandler, config: RateLimitConfig) -> Callable[[Request], Awaitable[Response]]:
    async def endpoint(request: Request) -> Response:
        api_key = (request.headers.get(settings.app.api_key_header) or "").strip()
        if not api_key:
            logger.warning("rate_limit.missing_key", extra={"endpoint": config.endpoint})
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={"success": False, "error": API_KEY_REQUIRED},
            )

        controller = get_admission_controller()
        loop = asyncio.get_running_loop()
        # Store calls block; keep them off the event loop
        result = await loop.run_in_executor(
            None,
            partial(controller.check_rate_limit, api_key, config.cost, endpoint=config.endpoint),
        )

        if not isinstance(result, AdmissionGranted):
            return denial_response(result)

        payload = await handler(request, result)
        if isinstance(payload, Response):
            return _merge_into_response(payload, result)
        return rate_limited_response(payload, result)

    # No functools.wraps: FastAPI must see this (request) signature, not the handler's
    endpoint.__name__ = getattr(handler, "__name__", "rate_limited_endpoint")
    endpoint.__doc__ = handler.__doc__
    return endpoint


def with_rate_limit(handler_or_config: RateLimitedHandler | RateLimitConfig, config: RateLimitConfig | None = None):
    """Wrap a handler with quota admission.

    Accepts either ``with_rate_limit(handler, config)`` or decorator form
    ``@with_rate_limit(config)``.

    Args:
        handler_or_config: The handler to wrap, or the config when used as a decorator.
        config: Metering configuration when a handler is passed first.

    Returns:
        A FastAPI endpoint, or a decorator producing one.
    """

    if isinstance(handler_or_config, RateLimitConfig):
        cfg = handler_or_config
        return lambda handler: _wrap(handler, cfg)
    if config is None:
        raise TypeError("with_rate_limit(handler, config) requires a RateLimitConfig")
    return _wrap(handler_or_config, config)
