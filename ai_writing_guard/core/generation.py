"""
Generation facade.

Builds task-specific prompts, dispatches them to the primary model and,
on any failure, retries exactly once against the fallback model.

Call lifecycle:
1. Pending - prompt built, nothing sent
2. Primary attempt - success ends the call
3. Fallback attempt - only after a primary failure, identical parameters
4. Success or GenerationFailed - never a partial result
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from . import prompts
from .errors import GenerationFailed
from .requests import (
    DEFAULT_CREATIVITY,
    DEFAULT_LENGTH,
    DEFAULT_TITLE_COUNT,
    DEFAULT_TONE,
    EnhancementType,
    GenerationKind,
    GenerationRequest,
    Length,
    Tone,
)
from ai_writing_guard.providers.base import ProviderClient, ProviderResponse

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelRoute:
    """A provider client paired with the model it should call."""
    provider: ProviderClient
    model: str

    def __post_init__(self):
        if not self.model or not self.model.strip():
            raise ValueError("model is required and cannot be empty")

    @property
    def label(self) -> str:
        return f"{getattr(self.provider, 'name', 'provider')}/{self.model}"


@dataclass(frozen=True)
class GenerationResult:
    """Output of one completed generation call."""
    feature: str
    model: str
    timestamp: datetime
    text: str = ""
    titles: List[str] = field(default_factory=list)
    changes: List[dict] = field(default_factory=list)
    tokens_used: int = 0

    def __post_init__(self):
        if self.tokens_used < 0:
            raise ValueError("tokens_used cannot be negative")


class GenerationFacade:
    """Orchestrates prompt construction and primary/fallback dispatch."""

    def __init__(
        self,
        primary: ModelRoute,
        fallback: Optional[ModelRoute] = None,
        clock: Callable[[], datetime] = datetime.now
    ):
        """Initialize the facade.

        Args:
            primary: Route tried first for every call
            fallback: Route tried once after a primary failure
            clock: Source of result timestamps
        """
        self.primary = primary
        self.fallback = fallback
        self.clock = clock

    def run(self, request: GenerationRequest) -> GenerationResult:
        """Dispatch a validated request to the matching operation."""
        if request.kind == GenerationKind.CONTENT_GENERATION:
            return self.generate_content(
                request.payload, request.tone, request.length, request.creativity
            )
        if request.kind == GenerationKind.GRAMMAR_CORRECTION:
            return self.correct_grammar(request.payload)
        if request.kind == GenerationKind.ENHANCEMENT:
            return self.enhance_content(request.payload, request.enhancement_type)
        return self.generate_titles(request.payload, request.title_count)

    def generate_content(
        self,
        prompt: str,
        tone: Tone = DEFAULT_TONE,
        length: Length = DEFAULT_LENGTH,
        creativity: float = DEFAULT_CREATIVITY
    ) -> GenerationResult:
        """Write new content from a prompt.

        The length option fixes the output ceiling: short 300, medium 600,
        long 1200 tokens. Creativity is passed through as the temperature.
        """
        response, model = self._invoke_with_fallback(
            GenerationKind.CONTENT_GENERATION.value,
            prompts.content_prompt(prompt, tone, length),
            temperature=creativity,
            max_output_tokens=prompts.content_max_tokens(length)
        )
        return self._result(GenerationKind.CONTENT_GENERATION.value, model, response, text=response.text)

    def correct_grammar(self, text: str) -> GenerationResult:
        """Return the corrected text verbatim.

        Empty or whitespace-only input never reaches a provider and costs
        zero tokens. No structured change list is produced.
        """
        if not text or not text.strip():
            return GenerationResult(
                feature=GenerationKind.GRAMMAR_CORRECTION.value,
                model="",
                timestamp=self.clock()
            )

        response, model = self._invoke_with_fallback(
            GenerationKind.GRAMMAR_CORRECTION.value,
            prompts.grammar_prompt(text),
            temperature=0.0,
            max_output_tokens=prompts.grammar_max_tokens(text)
        )
        return self._result(
            GenerationKind.GRAMMAR_CORRECTION.value, model, response, text=response.text.strip()
        )

    def enhance_content(self, text: str, enhancement_type: EnhancementType) -> GenerationResult:
        feature = f"{GenerationKind.ENHANCEMENT.value}_{enhancement_type.value}"
        response, model = self._invoke_with_fallback(
            feature,
            prompts.enhancement_prompt(text, enhancement_type),
            temperature=prompts.ENHANCEMENT_TEMPERATURE,
            max_output_tokens=prompts.ENHANCEMENT_MAX_TOKENS
        )
        return self._result(feature, model, response, text=response.text)

    def generate_titles(self, content: str, count: int = DEFAULT_TITLE_COUNT) -> GenerationResult:
        """Suggest up to ``count`` titles, one per non-empty response line."""
        response, model = self._invoke_with_fallback(
            GenerationKind.TITLE_SUGGESTION.value,
            prompts.titles_prompt(content, count),
            temperature=prompts.TITLES_TEMPERATURE,
            max_output_tokens=prompts.TITLES_MAX_TOKENS
        )
        titles = [line.strip() for line in response.text.split("\n") if line.strip()][:count]
        return self._result(GenerationKind.TITLE_SUGGESTION.value, model, response, titles=titles)

    def _result(self, feature: str, model: str, response: ProviderResponse, **output) -> GenerationResult:
        return GenerationResult(
            feature=feature,
            model=model,
            timestamp=self.clock(),
            tokens_used=response.tokens_used or 0,
            **output
        )

    def _invoke_with_fallback(
        self,
        feature: str,
        content: str,
        temperature: float,
        max_output_tokens: int
    ) -> Tuple[ProviderResponse, str]:
        """Call the primary route, then the fallback route once on failure.

        Returns:
            (provider response, label of the route that produced it)

        Raises:
            GenerationFailed: If every attempted route failed
        """
        routes = [self.primary] if self.fallback is None else [self.primary, self.fallback]
        last_error: Optional[Exception] = None

        for attempt, route in enumerate(routes):
            try:
                response = route.provider.invoke(
                    route.model, content, temperature, max_output_tokens
                )
            except Exception as e:
                last_error = e
                if attempt == 0 and len(routes) > 1:
                    logger.warning("Primary model %s failed for %s: %s", route.label, feature, e)
                else:
                    logger.error("Model %s failed for %s: %s", route.label, feature, e)
                continue

            if attempt == 0:
                logger.info("%s generated by %s (%d tokens)", feature, route.label, response.tokens_used)
            else:
                logger.info("%s generated by fallback %s (%d tokens)", feature, route.label, response.tokens_used)
            return response, route.label

        raise GenerationFailed(
            f"Failed to complete {feature} request",
            status_code=getattr(last_error, "status_code", 500),
            cause=last_error,
            feature=feature
        )
