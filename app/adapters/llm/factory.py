"""Factory pattern for creating LLM client instances."""

from app.adapters.llm.base import AbstractLLMClient
from app.adapters.llm.openai_client import OpenAIClient
from app.core.config import LLMSettings, settings
from app.core.errors import ValidationAppError

SUPPORTED_PROVIDERS = ("openai",)


def create_llm_client(llm_settings: LLMSettings | None = None) -> AbstractLLMClient:
    """Instantiate the configured LLM client.

    Args:
        llm_settings: Optional override; defaults to ``settings.llm``.

    Returns:
        AbstractLLMClient: Configured LLM client instance.

    Raises:
        ValidationAppError: If the provider is unknown or its requirements are not met.
    """
    cfg = llm_settings or settings.llm
    provider = cfg.provider.lower()

    if provider == "openai":
        if not cfg.api_key:
            raise ValidationAppError(
                code="llm_missing_api_key",
                message="OpenAI provider requires LLM_API_KEY environment variable",
            )
        return OpenAIClient(
            api_key=cfg.api_key,
            model=cfg.model,
            base_url=cfg.base_url,
            timeout_seconds=cfg.timeout_seconds,
        )

    raise ValidationAppError(
        code="llm_unknown_provider",
        message=f"Unknown LLM provider: '{provider}'. Supported providers: {', '.join(SUPPORTED_PROVIDERS)}",
    )
