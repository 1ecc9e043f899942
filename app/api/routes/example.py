"""Priced example endpoints showing how to meter a route.

GET is charged as a lightweight call (0.5 units), POST as a standard one.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone

from fastapi import APIRouter, Request

from app.core.errors import ValidationAppError
from app.core.rate_limit import EndpointTier, RateLimitConfig, with_rate_limit
from app.services.admission import AdmissionGranted

router = APIRouter(prefix="/example-endpoint", tags=["Example"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


async def handle_example_get(request: Request, granted: AdmissionGranted) -> dict:
    return {"success": True, "message": "GET request processed", "timestamp": _now()}


async def handle_example_post(request: Request, granted: AdmissionGranted) -> dict:
    try:
        body = await request.json()
    except json.JSONDecodeError as exc:
        raise ValidationAppError(code="invalid_request", message="Invalid request") from exc
    if not isinstance(body, dict):
        raise ValidationAppError(code="invalid_request", message="Invalid request")

    return {
        "success": True,
        "message": "Example endpoint processed successfully",
        "data": body.get("data"),
        "processedAt": _now(),
    }


router.add_api_route(
    "",
    with_rate_limit(handle_example_get, RateLimitConfig(endpoint="example-endpoint-get", increment_by=EndpointTier.LIGHTWEIGHT)),
    methods=["GET"],
)
router.add_api_route(
    "",
    with_rate_limit(handle_example_post, RateLimitConfig(endpoint="example-endpoint", increment_by=EndpointTier.STANDARD)),
    methods=["POST"],
)
