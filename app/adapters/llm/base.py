from abc import ABC, abstractmethod
from typing import Any


class AbstractLLMClient(ABC):
	"""Interface for LLM clients that produce structured JSON outputs."""

	model: str

	@abstractmethod
	async def generate_json(
		self,
		prompt: str,
		*,
		system: str | None = None,
		schema: dict[str, Any] | None = None,
		**kwargs: Any,
	) -> dict[str, Any]:
		"""Generate a JSON object from the model.

		Args:
			prompt: User message (e.g. README content) sent to the model.
			system: Optional system instructions; providers fall back to a JSON-only instruction.
			schema: Optional JSON schema the response must follow.
			**kwargs: Provider-specific options (e.g., temperature, max_tokens).

		Returns:
			dict[str, Any]: Parsed JSON object returned by the model.

		Raises:
			RuntimeError: If the provider call fails or the response is not a JSON object.
		"""
		...
