"""
Provider clients for AI Writing Guard.

Each client wraps one generative-text backend behind the same call contract.
"""

from .base import ProviderClient, ProviderResponse, ProviderSettings
from .gemini_provider import GeminiProvider
from .openai_provider import OpenAIProvider

BACKENDS = {
    OpenAIProvider.name: OpenAIProvider,
    GeminiProvider.name: GeminiProvider,
}


def build_provider(settings: ProviderSettings) -> ProviderClient:
    """Create the provider client named by ``settings.backend``.

    Raises:
        ValueError: If the backend is unknown
    """
    if settings.backend not in BACKENDS:
        raise ValueError(
            f"Unsupported provider backend: {settings.backend} "
            f"(expected one of {sorted(BACKENDS)})"
        )
    return BACKENDS[settings.backend](settings)


__all__ = [
    "BACKENDS",
    "GeminiProvider",
    "OpenAIProvider",
    "ProviderClient",
    "ProviderResponse",
    "ProviderSettings",
    "build_provider",
]
