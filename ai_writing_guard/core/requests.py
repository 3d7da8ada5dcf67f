"""
Generation request kinds, options and input bounds.

All validation happens here so malformed input is rejected before the
quota governor or any provider is touched.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from .errors import ValidationError


class GenerationKind(Enum):
    """Request kinds. Values are the feature tags stored in the usage ledger."""
    CONTENT_GENERATION = "generate"
    GRAMMAR_CORRECTION = "grammar"
    ENHANCEMENT = "enhance"
    TITLE_SUGGESTION = "titles"


class Tone(Enum):
    PROFESSIONAL = "professional"
    CASUAL = "casual"
    TECHNICAL = "technical"
    CREATIVE = "creative"


class Length(Enum):
    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"


class EnhancementType(Enum):
    EXPAND = "expand"
    SIMPLIFY = "simplify"
    IMPROVE = "improve"
    SUMMARIZE = "summarize"


# Inclusive character bounds per kind
PROMPT_BOUNDS = (10, 2000)
TEXT_BOUNDS = (1, 5000)
TITLE_CONTENT_BOUNDS = (10, 10000)
TITLE_COUNT_BOUNDS = (1, 10)

DEFAULT_TONE = Tone.PROFESSIONAL
DEFAULT_LENGTH = Length.MEDIUM
DEFAULT_CREATIVITY = 0.7
DEFAULT_TITLE_COUNT = 5


@dataclass(frozen=True)
class GenerationRequest:
    """A validated request, ready for the generation facade."""
    kind: GenerationKind
    payload: str
    tone: Tone = DEFAULT_TONE
    length: Length = DEFAULT_LENGTH
    creativity: float = DEFAULT_CREATIVITY
    enhancement_type: Optional[EnhancementType] = None
    title_count: int = DEFAULT_TITLE_COUNT

    @property
    def feature_tag(self) -> str:
        """Ledger tag; enhancement subtypes are flattened as ``enhance_<subtype>``."""
        if self.kind == GenerationKind.ENHANCEMENT and self.enhancement_type is not None:
            return f"{self.kind.value}_{self.enhancement_type.value}"
        return self.kind.value


def _check_text(value: Any, field: str, bounds) -> str:
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string", details=[{"field": field}])
    stripped = value.strip()
    low, high = bounds
    if not low <= len(stripped) <= high:
        raise ValidationError(
            f"{field} must be between {low} and {high} characters",
            details=[{"field": field, "length": len(stripped)}]
        )
    return stripped


def _parse_enum(enum_cls, value: Any, field: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(
            f"{field} must be one of: {allowed}",
            details=[{"field": field, "value": value}]
        )


def content_request(
    prompt: Any,
    tone: Any = None,
    length: Any = None,
    creativity: Any = None
) -> GenerationRequest:
    """Validate a content-generation request."""
    payload = _check_text(prompt, "prompt", PROMPT_BOUNDS)
    parsed_tone = DEFAULT_TONE if tone is None else _parse_enum(Tone, tone, "tone")
    parsed_length = DEFAULT_LENGTH if length is None else _parse_enum(Length, length, "length")

    if creativity is None:
        temperature = DEFAULT_CREATIVITY
    else:
        if isinstance(creativity, bool) or not isinstance(creativity, (int, float)):
            raise ValidationError("creativity must be a number", details=[{"field": "creativity"}])
        temperature = float(creativity)
        if not 0.0 <= temperature <= 1.0:
            raise ValidationError(
                "creativity must be between 0 and 1",
                details=[{"field": "creativity", "value": creativity}]
            )

    return GenerationRequest(
        kind=GenerationKind.CONTENT_GENERATION,
        payload=payload,
        tone=parsed_tone,
        length=parsed_length,
        creativity=temperature
    )


def grammar_request(text: Any) -> GenerationRequest:
    return GenerationRequest(
        kind=GenerationKind.GRAMMAR_CORRECTION,
        payload=_check_text(text, "text", TEXT_BOUNDS)
    )


def enhancement_request(text: Any, enhancement_type: Any) -> GenerationRequest:
    return GenerationRequest(
        kind=GenerationKind.ENHANCEMENT,
        payload=_check_text(text, "text", TEXT_BOUNDS),
        enhancement_type=_parse_enum(EnhancementType, enhancement_type, "type")
    )


def titles_request(content: Any, count: Any = None) -> GenerationRequest:
    payload = _check_text(content, "content", TITLE_CONTENT_BOUNDS)
    if count is None:
        count = DEFAULT_TITLE_COUNT
    low, high = TITLE_COUNT_BOUNDS
    if isinstance(count, bool) or not isinstance(count, int) or not low <= count <= high:
        raise ValidationError(
            f"count must be between {low} and {high}",
            details=[{"field": "count", "value": count}]
        )
    return GenerationRequest(
        kind=GenerationKind.TITLE_SUGGESTION,
        payload=payload,
        title_count=count
    )
