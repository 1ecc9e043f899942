from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from app.core.errors import CredentialStoreError
from app.core.rate_limit import get_credential_store

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness probe. Does not touch the credential store."""

    return {"status": "ok"}


@router.get("/health/ready")
def readiness_check() -> JSONResponse:
    """Readiness probe: 200 when the credential store answers a lookup, 503 otherwise."""

    try:
        get_credential_store().find_active("readiness-probe")
    except CredentialStoreError:
        return JSONResponse(status_code=503, content={"status": "unavailable", "credential_store": "error"})
    return JSONResponse(status_code=200, content={"status": "ok", "credential_store": "ok"})
