"""Pydantic schemas for API key management and validation."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from app.adapters.credential_store import ApiKeyRecord, KeyStatus


class CreateApiKeyRequest(BaseModel):
    """Body of ``POST /v1/keys``."""

    name: str | None = Field(default=None, description="Label shown to the owner.")
    status: KeyStatus = Field(default=KeyStatus.ACTIVE, description="Initial status.")
    limit: float | None = Field(
        default=None,
        allow_inf_nan=False,
        description="Maximum cumulative usage. Defaults to the configured default limit (1000).",
    )


class UpdateApiKeyRequest(BaseModel):
    """Body of ``PUT /v1/keys/{id}``. Omitted fields are left unchanged."""

    name: str | None = None
    status: KeyStatus | None = None
    limit: float | None = Field(default=None, allow_inf_nan=False, description="New limit; must be >= 1.")
    usage: float | None = Field(default=None, allow_inf_nan=False, description="Reset usage to this value; must be >= 0.")


class ApiKeyOut(BaseModel):
    """API key as returned to its owner."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    key: str
    status: KeyStatus
    usage: float = 0
    limit: float
    owner_id: str
    created_at: datetime

    @field_serializer("usage", "limit")
    def serialize_amount(self, value: float) -> int | float:
        return int(value) if float(value).is_integer() else value

    @classmethod
    def from_record(cls, record: ApiKeyRecord, *, default_limit: float) -> "ApiKeyOut":
        return cls(
            id=record.id,
            name=record.name,
            key=record.key,
            status=record.status,
            usage=record.usage or 0,
            limit=record.limit or default_limit,
            owner_id=record.owner_id,
            created_at=record.created_at,
        )


class ApiKeyEnvelope(BaseModel):
    success: bool = True
    data: ApiKeyOut


class ApiKeyListEnvelope(BaseModel):
    success: bool = True
    data: list[ApiKeyOut]


class ValidateKeyRequest(BaseModel):
    """Body of ``POST /v1/validate-key``."""

    apiKey: str | None = Field(default=None, description="API key to check.")


class ValidateKeyResponse(BaseModel):
    valid: bool
