from __future__ import annotations

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from app.core.logging import fingerprint
from app.core.rate_limit import get_credential_store
from app.schemas.api_keys import ValidateKeyRequest, ValidateKeyResponse
from app.services.api_key_service import ApiKeyService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["API Keys"])


@router.post(
    "/validate-key",
    response_model=ValidateKeyResponse,
    responses={400: {"description": "apiKey missing from the body"}},
)
def validate_key(body: ValidateKeyRequest):
    """Report whether an API key exists and is active.

    Does not charge usage; unknown and inactive keys both answer
    ``{"valid": false}`` with status 200.
    """
    if not body.apiKey:
        return JSONResponse(status_code=400, content={"valid": False, "error": "apiKey is required"})

    valid = ApiKeyService(get_credential_store()).is_valid(body.apiKey)
    logger.info("validate_key.checked", extra={"key_hash": fingerprint(body.apiKey), "valid": valid})
    return ValidateKeyResponse(valid=valid)
