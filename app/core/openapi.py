"""OpenAPI customizations.

Declares the two credentials the API understands and attaches them to the
operations that need them:
- ``ApiKeyAuth`` (``x-api-key`` header) on quota-metered endpoints
- ``OwnerAuth`` (owner header) on key-management endpoints
Everything else (health, validate-key) is documented as unauthenticated.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

from app.core.config import settings

TAGS_METADATA = [
    {"name": "Summarizer", "description": "GitHub README summarization (metered)."},
    {"name": "Example", "description": "Priced example endpoints (metered)."},
    {"name": "API Keys", "description": "Key management for the signed-in owner and key validation."},
    {"name": "Health", "description": "Liveness and readiness checks."},
]

METERED_TAGS = {"Summarizer", "Example"}
OWNER_TAGS = {"API Keys"}
UNAUTHENTICATED_PATHS = {"/v1/validate-key"}


def _security_for(path: str, operation: dict[str, Any]) -> list[dict[str, list]]:
    tags = set(operation.get("tags", []))
    if path in UNAUTHENTICATED_PATHS:
        return []
    if tags & METERED_TAGS:
        return [{"ApiKeyAuth": []}]
    if tags & OWNER_TAGS:
        return [{"OwnerAuth": []}]
    return []


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add security schemes and tags."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema
        schema = original_openapi()

        security_schemes = schema.setdefault("components", {}).setdefault("securitySchemes", {})
        security_schemes["ApiKeyAuth"] = {
            "type": "apiKey",
            "in": "header",
            "name": settings.app.api_key_header,
            "description": "API key; each call is charged against its usage limit.",
        }
        security_schemes["OwnerAuth"] = {
            "type": "apiKey",
            "in": "header",
            "name": settings.app.owner_header,
            "description": "Signed-in user id forwarded by the sign-in layer.",
        }

        schema["tags"] = TAGS_METADATA

        for path, methods in schema.get("paths", {}).items():
            for operation in methods.values():
                if isinstance(operation, dict):
                    operation["security"] = _security_for(path, operation)

        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
