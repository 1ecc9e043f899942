from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from app.adapters.github import GitHubReadmeClient
from app.adapters.llm.factory import create_llm_client
from app.core.config import settings
from app.core.errors import LLMAppError, ValidationAppError
from app.core.rate_limit import EndpointTier, RateLimitConfig, with_rate_limit
from app.schemas.summarizer import GitHubSummarizerRequest, GitHubSummarizerResponse
from app.services.admission import AdmissionGranted
from app.services.summarizer_service import SUMMARIZE_FAILED, SummarizerService
from app.utils.simple_cache import SimpleTTLCache

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Summarizer"])

SUMMARIZER_LIMIT = RateLimitConfig(endpoint="github-summarizer", increment_by=EndpointTier.STANDARD)

_summarizer_service: SummarizerService | None = None
_readme_client: GitHubReadmeClient | None = None


def get_summarizer_service() -> SummarizerService:
    """Build the summarizer on first use so the app starts without LLM credentials."""
    global _summarizer_service
    if _summarizer_service is None:
        try:
            llm = create_llm_client()
        except ValidationAppError as exc:
            logger.error("summarizer.llm_not_configured", extra={"error_code": exc.code})
            raise LLMAppError(code="llm_not_configured", message=SUMMARIZE_FAILED) from exc
        cache = SimpleTTLCache(ttl_seconds=settings.github.summary_cache_ttl_seconds, max_entries=1024)
        _summarizer_service = SummarizerService(llm=llm, cache=cache)
    return _summarizer_service


def get_readme_client() -> GitHubReadmeClient:
    global _readme_client
    if _readme_client is None:
        _readme_client = GitHubReadmeClient()
    return _readme_client


async def _read_body(request: Request) -> GitHubSummarizerRequest:
    try:
        return GitHubSummarizerRequest.model_validate(await request.json())
    except (json.JSONDecodeError, ValidationError) as exc:
        raise ValidationAppError(code="invalid_request", message="Invalid request") from exc


@router.post(
    "/github-summarizer",
    responses={
        400: {"description": "Missing API key or malformed body"},
        401: {"description": "Invalid or inactive API key"},
        404: {"description": "README.md not found"},
        429: {"description": "Rate limit exceeded"},
        502: {"description": "Summarization failed"},
    },
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": GitHubSummarizerRequest.model_json_schema()}},
        }
    },
)
@with_rate_limit(SUMMARIZER_LIMIT)
async def github_summarizer(request: Request, granted: AdmissionGranted):
    """Summarize a public GitHub repository from its README.md.

    Charges one unit against the caller's API key before any work is done;
    the charge stands even if the README cannot be fetched.
    """
    body = await _read_body(request)

    readme = await get_readme_client().fetch_readme(body.githubUrl)
    if not readme:
        return JSONResponse(
            status_code=404,
            content={"success": False, "error": "Could not fetch README.md from repository"},
        )

    summary, cached = await get_summarizer_service().summarize(readme)
    return GitHubSummarizerResponse(summary=summary.summary, cool_facts=summary.cool_facts, cached=cached)
