"""API key management for the signed-in owner."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from app.core.auth import require_owner
from app.core.config import settings
from app.core.rate_limit import get_credential_store
from app.schemas.api_keys import (
    ApiKeyEnvelope,
    ApiKeyListEnvelope,
    ApiKeyOut,
    CreateApiKeyRequest,
    UpdateApiKeyRequest,
)
from app.services.api_key_service import ApiKeyService

router = APIRouter(prefix="/keys", tags=["API Keys"])


def get_api_key_service() -> ApiKeyService:
    return ApiKeyService(get_credential_store())


def _out(record) -> ApiKeyOut:
    return ApiKeyOut.from_record(record, default_limit=settings.app.default_limit)


@router.get("", response_model=ApiKeyListEnvelope)
def list_keys(
    owner_id: str = Depends(require_owner),
    service: ApiKeyService = Depends(get_api_key_service),
) -> ApiKeyListEnvelope:
    """List the owner's keys, newest first."""
    return ApiKeyListEnvelope(data=[_out(r) for r in service.list_keys(owner_id)])


@router.post("", response_model=ApiKeyEnvelope, status_code=status.HTTP_201_CREATED)
def create_key(
    body: CreateApiKeyRequest,
    owner_id: str = Depends(require_owner),
    service: ApiKeyService = Depends(get_api_key_service),
) -> ApiKeyEnvelope:
    """Create a key with a freshly generated secret.

    The key string is returned in full; callers are expected to store it.
    """
    record = service.create_key(owner_id, body.name, status=body.status, limit=body.limit)
    return ApiKeyEnvelope(data=_out(record))


@router.get("/{key_id}", response_model=ApiKeyEnvelope)
def get_key(
    key_id: str,
    owner_id: str = Depends(require_owner),
    service: ApiKeyService = Depends(get_api_key_service),
) -> ApiKeyEnvelope:
    return ApiKeyEnvelope(data=_out(service.get_key(owner_id, key_id)))


@router.put("/{key_id}", response_model=ApiKeyEnvelope)
def update_key(
    key_id: str,
    body: UpdateApiKeyRequest,
    owner_id: str = Depends(require_owner),
    service: ApiKeyService = Depends(get_api_key_service),
) -> ApiKeyEnvelope:
    """Edit name, status or limit, or reset usage."""
    record = service.update_key(
        owner_id,
        key_id,
        name=body.name,
        status=body.status,
        limit=body.limit,
        usage=body.usage,
    )
    return ApiKeyEnvelope(data=_out(record))


@router.delete("/{key_id}", response_model=ApiKeyEnvelope)
def delete_key(
    key_id: str,
    owner_id: str = Depends(require_owner),
    service: ApiKeyService = Depends(get_api_key_service),
) -> ApiKeyEnvelope:
    return ApiKeyEnvelope(data=_out(service.delete_key(owner_id, key_id)))
