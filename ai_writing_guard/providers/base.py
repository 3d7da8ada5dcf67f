"""
Provider client contract.

A provider wraps one generative-text backend behind a uniform call:
(model, content, temperature, max_output_tokens) -> (text, tokens_used).
"""

from dataclasses import dataclass
from typing import Any, Optional, Protocol

from ..core.errors import ProviderError
from ..core.token_counter import read_field

DEFAULT_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True)
class ProviderSettings:
    """Explicit provider configuration handed to each client."""
    backend: str
    api_key: Optional[str] = None
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    def __post_init__(self):
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.api_key.strip())


@dataclass(frozen=True)
class ProviderResponse:
    """Normalized provider output."""
    text: str
    tokens_used: int
    model: str


class ProviderClient(Protocol):
    name: str

    def invoke(
        self,
        model: str,
        content: str,
        temperature: float,
        max_output_tokens: int
    ) -> ProviderResponse:
        """Run one generation call.

        Raises:
            ProviderUnavailable: If the client is not configured
            ProviderTimeout: If the call exceeded its timeout
            ProviderError: For any other upstream failure
        """
        ...


def extract_text(raw: Any) -> str:
    """Pull the generated text out of a provider response.

    Known shapes are tried in order: ``text``, ``response.text``,
    ``output[0].content``, ``choices[0].message.content``. Returns an
    empty string when none of them holds a string.
    """
    text = read_field(raw, "text")
    if isinstance(text, str):
        return text

    text = read_field(read_field(raw, "response"), "text")
    if isinstance(text, str):
        return text

    output = read_field(raw, "output")
    if isinstance(output, (list, tuple)) and output:
        text = read_field(output[0], "content")
        if isinstance(text, str):
            return text

    choices = read_field(raw, "choices")
    if isinstance(choices, (list, tuple)) and choices:
        text = read_field(read_field(choices[0], "message"), "content")
        if isinstance(text, str):
            return text

    return ""


def normalize_error(err: Exception, provider: str) -> ProviderError:
    """Map an SDK exception onto a status-coded ProviderError.

    The status comes from the exception (``status_code`` or an integer
    ``code``) and defaults to 500. Any message mentioning quota is
    reported as 429.
    """
    message = str(err) or "Generative API error"
    status = getattr(err, "status_code", None)
    if not isinstance(status, int):
        status = getattr(err, "code", None)
    if not isinstance(status, int) or isinstance(status, bool):
        status = 500
    if "quota" in message.lower():
        status = 429
    return ProviderError(f"{provider}: {message}", status_code=status)
