from __future__ import annotations

from app.api.routes.example import router as example_router
from app.api.routes.github_summarizer import router as github_summarizer_router
from app.api.routes.health import router as health_router
from app.api.routes.keys import router as keys_router
from app.api.routes.validate_key import router as validate_key_router

__all__ = [
    "example_router",
    "github_summarizer_router",
    "health_router",
    "keys_router",
    "validate_key_router",
]
