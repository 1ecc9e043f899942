"""README summarization: prompt construction, LLM call, validation and caching.

Given README text, produces a ``RepoSummary`` (a concise summary plus at
least one cool fact). Identical READMEs are served from the TTL cache.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from app.adapters.llm.base import AbstractLLMClient
from app.core.errors import LLMAppError, ValidationAppError
from app.schemas.summarizer import RepoSummary
from app.utils.simple_cache import SimpleTTLCache, build_cache_key

logger = logging.getLogger(__name__)

# Bump when the prompt changes so stale summaries are not reused
PROMPT_VERSION = "v1"

# Keeps very large READMEs within model context limits
MAX_README_CHARS = 60_000

SYSTEM_PROMPT = (
    "You are a helpful assistant. Summarize this GitHub repository from this readme file content. "
    "Your response should include a concise summary and a list of cool or interesting facts about "
    'the repository. Return only a JSON object of the form {"summary": string, "cool_facts": [string, ...]}.'
)

SUMMARIZE_FAILED = "Failed to summarize repository"


def _truncate(text: str, max_chars: int) -> tuple[str, bool]:
    if len(text) <= max_chars:
        return text, False
    return text[:max_chars], True


class SummarizerService:
    """Summarizes README content with an LLM.

    Attributes:
        llm: LLM client adapter for generating structured JSON.
        cache: TTL cache of summaries keyed by README hash.
    """

    def __init__(self, llm: AbstractLLMClient, cache: SimpleTTLCache) -> None:
        self.llm = llm
        self.cache = cache

    def _cache_key(self, readme: str) -> str:
        return build_cache_key(PROMPT_VERSION, getattr(self.llm, "model", ""), readme)

    async def summarize(self, readme: str) -> tuple[RepoSummary, bool]:
        """Summarize README text.

        Args:
            readme: Raw README.md content.

        Returns:
            Tuple of (summary, served_from_cache).

        Raises:
            ValidationAppError: If the README is empty.
            LLMAppError: If the LLM call fails or returns an unusable payload.
        """
        if not readme or not readme.strip():
            raise ValidationAppError(code="readme_empty", message="README.md is empty")

        readme, truncated = _truncate(readme, MAX_README_CHARS)
        cache_key = self._cache_key(readme)

        cached = self.cache.get(cache_key)
        if cached is not None:
            return RepoSummary.model_validate(cached), True

        try:
            raw = await self.llm.generate_json(
                readme,
                system=SYSTEM_PROMPT,
                schema=RepoSummary.model_json_schema(),
            )
        except RuntimeError as exc:
            logger.error("summarizer.llm_failed", extra={"error_msg": str(exc)})
            raise LLMAppError(code="llm_request_failed", message=SUMMARIZE_FAILED) from exc

        try:
            summary = RepoSummary.model_validate(raw)
        except ValidationError as exc:
            logger.error("summarizer.invalid_output", extra={"error_count": exc.error_count()})
            raise LLMAppError(code="llm_invalid_output", message=SUMMARIZE_FAILED) from exc

        self.cache.set(cache_key, summary.model_dump())
        logger.info(
            "summarizer.completed",
            extra={"readme_chars": len(readme), "truncated": truncated, "facts": len(summary.cool_facts)},
        )
        return summary, False
