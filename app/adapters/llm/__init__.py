"""LLM adapter layer - abstracts over LLM providers used for summarization."""

from app.adapters.llm.base import AbstractLLMClient
from app.adapters.llm.factory import create_llm_client
from app.adapters.llm.openai_client import OpenAIClient

__all__ = [
    "AbstractLLMClient",
    "OpenAIClient",
    "create_llm_client",
]
