"""Owner identification for key-management endpoints.

Sign-in happens in front of this service; the sign-in layer forwards the
authenticated user's id in a header (``X-User-Id`` by default). Key
management is scoped to that owner. Metered endpoints do not use this
module: they authenticate with the API key itself (see ``app.core.rate_limit``).
"""

from __future__ import annotations

import logging

from fastapi import Request

from app.core.config import settings
from app.core.errors import AuthenticationAppError

logger = logging.getLogger(__name__)


def resolve_owner_id(raw_value: str | None) -> str:
    """Normalize the forwarded owner id.

    Args:
        raw_value: Header value, or None when absent.

    Returns:
        The trimmed owner id.

    Raises:
        AuthenticationAppError: If the value is missing or blank.

    Examples:
        >>> resolve_owner_id("  user-1 ")
        'user-1'
    """
    owner_id = (raw_value or "").strip()
    if not owner_id:
        raise AuthenticationAppError(code="unauthorized", message="Unauthorized")
    return owner_id


async def require_owner(request: Request) -> str:
    """FastAPI dependency returning the signed-in owner's id.

    The header name comes from ``APP_OWNER_HEADER`` so it is read from the
    request directly rather than declared as a parameter.

    Usage:
        @router.get("/keys")
        def list_keys(owner_id: str = Depends(require_owner)): ...

    Raises:
        AuthenticationAppError: 401 when the owner header is missing.
    """
    try:
        return resolve_owner_id(request.headers.get(settings.app.owner_header))
    except AuthenticationAppError:
        logger.warning(
            "auth.missing_owner",
            extra={"path": request.url.path, "header": settings.app.owner_header},
        )
        raise
