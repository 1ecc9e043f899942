"""Domain errors for key management, admission and README summarization.

Services and adapters raise these; ``app.core.exception_handlers`` turns
each one into the ``{"success": false, "error", "code"}`` envelope with the
status picked by its type. Admission denials are not errors: the controller
returns them as results and the rate-limit wrapper renders them directly.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Extra context attached to an error envelope.

    ``field`` names the rejected key-management input (``limit``, ``usage``,
    ``name``) and ``operation`` the credential store call that failed.
    """

    field: str
    operation: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base class for failures reported to API clients.

    Attributes:
        code: Machine-readable code, e.g. ``invalid_limit`` or ``api_key_not_found``.
        message: Text placed in the envelope's ``error`` field.
        details: Optional ``ErrorDetails`` returned alongside.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Rejected input or configuration: blank key name, out-of-range limit or usage, bad LLM settings (400)."""


class AuthenticationAppError(AppError):
    """The owner header forwarded by the sign-in layer is missing (401)."""


class NotFoundAppError(AppError):
    """The key does not exist or belongs to another owner (404)."""


class LLMAppError(AppError):
    """The summarizer model failed, returned unusable output, or is not configured (502)."""


class CredentialStoreError(AppError):
    """The credential store backend could not complete a lookup or write (503)."""
