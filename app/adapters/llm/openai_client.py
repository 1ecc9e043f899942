"""OpenAI LLM client adapter."""

import json
from typing import Any

from openai import AsyncOpenAI

from app.adapters.llm.base import AbstractLLMClient

DEFAULT_SYSTEM_PROMPT = "Output JSON only. No extra text or markdown formatting."

# Options forwarded verbatim to chat.completions.create
_PASSTHROUGH_PARAMS = ("max_tokens", "top_p", "frequency_penalty", "presence_penalty", "seed")


class OpenAIClient(AbstractLLMClient):
    """Client for calling OpenAI chat completions and returning JSON.

    Uses the official OpenAI Python SDK with async support.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str | None = None,
        timeout_seconds: float = 45.0,
    ) -> None:
        """Initialize OpenAI async client.

        Args:
            api_key: OpenAI API key for authentication.
            model: Model name (e.g., "gpt-4o", "gpt-4o-mini").
            base_url: Optional custom base URL for OpenAI API.
            timeout_seconds: Timeout for requests in seconds.
        """
        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_seconds,
        )
        self.model = model

    async def generate_json(
        self,
        prompt: str,
        *,
        system: str | None = None,
        schema: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """Generate a JSON object using OpenAI chat completions.

        The schema, when given, is appended to the system message and JSON
        mode is switched on.

        Raises:
            RuntimeError: If the API call fails or the response is not a JSON object.
        """
        system_content = system or DEFAULT_SYSTEM_PROMPT
        if schema is not None:
            system_content += "\n\nRespond with a JSON object matching this schema:\n" + json.dumps(schema)

        request_params: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_content},
                {"role": "user", "content": prompt},
            ],
            # Deterministic summaries
            "temperature": kwargs.pop("temperature", 0),
            "response_format": {"type": "json_object"},
        }
        for param in _PASSTHROUGH_PARAMS:
            if param in kwargs:
                request_params[param] = kwargs[param]

        try:
            response = await self.client.chat.completions.create(**request_params)
            content = response.choices[0].message.content
        except Exception as exc:
            raise RuntimeError(f"OpenAI API error: {exc}") from exc

        if content is None:
            raise RuntimeError("LLM returned empty response")

        try:
            parsed = json.loads(content.strip())
        except json.JSONDecodeError as exc:
            raise RuntimeError(f"LLM returned invalid JSON: {exc}") from exc

        if not isinstance(parsed, dict):
            raise RuntimeError("LLM returned JSON that is not an object")
        return parsed
