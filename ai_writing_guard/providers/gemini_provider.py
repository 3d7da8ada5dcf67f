"""
Gemini provider client.

Uses the google-genai SDK (``models.generate_content``).
"""

import logging
from typing import Any, Optional

import httpx
from google import genai
from google.genai import types

from ..core.errors import ProviderTimeout, ProviderUnavailable
from ..core.token_counter import extract_total_tokens
from .base import ProviderResponse, ProviderSettings, extract_text, normalize_error

logger = logging.getLogger(__name__)


class GeminiProvider:
    """Provider client backed by google-genai."""

    name = "gemini"

    def __init__(self, settings: ProviderSettings):
        self.settings = settings
        self.client: Optional[Any] = None
        if not settings.is_configured:
            logger.warning("Gemini provider has no API key; calls will fail with 503")
            return

        try:
            self.client = genai.Client(
                api_key=settings.api_key,
                # HttpOptions.timeout is in milliseconds
                http_options=types.HttpOptions(timeout=int(settings.timeout_seconds * 1000))
            )
            logger.info("Gemini client initialized")
        except Exception as e:
            self.client = None
            logger.warning("Failed to initialize Gemini client: %s", e)

    def invoke(
        self,
        model: str,
        content: str,
        temperature: float,
        max_output_tokens: int
    ) -> ProviderResponse:
        if self.client is None:
            raise ProviderUnavailable(
                "Generative client not configured (set GENAI_API_KEY or GEMINI_API_KEY)"
            )

        config = types.GenerateContentConfig(
            temperature=temperature,
            max_output_tokens=max_output_tokens
        )
        try:
            response = self.client.models.generate_content(
                model=model,
                contents=content,
                config=config
            )
        except httpx.TimeoutException as e:
            raise ProviderTimeout(
                f"gemini: request to {model} timed out after {self.settings.timeout_seconds}s"
            ) from e
        except Exception as e:
            raise normalize_error(e, self.name) from e

        return ProviderResponse(
            text=extract_text(response),
            tokens_used=extract_total_tokens(response),
            model=model
        )
