"""
OpenAI provider client.

Runs chat completions and normalizes the response and its failures.
"""

import logging
from typing import Optional

import openai
from openai import OpenAI

from ..core.errors import ProviderTimeout, ProviderUnavailable
from ..core.token_counter import extract_total_tokens
from .base import ProviderResponse, ProviderSettings, extract_text, normalize_error

logger = logging.getLogger(__name__)


class OpenAIProvider:
    """Provider client backed by the OpenAI SDK.

    The SDK's own retries are disabled: the generation facade decides
    whether a failed call is retried against the fallback model.
    """

    name = "openai"

    def __init__(self, settings: ProviderSettings):
        """Initialize the OpenAI provider.

        Args:
            settings: Provider settings (api key and timeout)
        """
        self.settings = settings
        self.client: Optional[OpenAI] = None
        if settings.is_configured:
            self.client = OpenAI(
                api_key=settings.api_key,
                timeout=settings.timeout_seconds,
                max_retries=0
            )
        else:
            logger.warning("OpenAI provider has no API key; calls will fail with 503")

    def invoke(
        self,
        model: str,
        content: str,
        temperature: float,
        max_output_tokens: int
    ) -> ProviderResponse:
        if self.client is None:
            raise ProviderUnavailable(
                "Generative client not configured (set OPENAI_API_KEY)"
            )

        try:
            response = self.client.chat.completions.create(
                model=model,
                messages=[{"role": "user", "content": content}],
                temperature=temperature,
                max_tokens=max_output_tokens
            )
        except openai.APITimeoutError as e:
            raise ProviderTimeout(
                f"openai: request to {model} timed out after {self.settings.timeout_seconds}s"
            ) from e
        except Exception as e:
            raise normalize_error(e, self.name) from e

        return ProviderResponse(
            text=extract_text(response),
            tokens_used=extract_total_tokens(response),
            model=model
        )
