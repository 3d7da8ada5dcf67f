"""
Prompt templates and output-token ceilings.

Every template is fixed text; only the caller's payload and options
are substituted in.
"""

import math
from typing import Dict

from .requests import EnhancementType, Length, Tone

WRITER_PERSONA = "You are an expert content writer."

TONE_DIRECTIVES: Dict[Tone, str] = {
    Tone.PROFESSIONAL: "Write in a formal, informative tone.",
    Tone.CASUAL: "Write in a friendly, conversational tone.",
    Tone.TECHNICAL: "Write in a precise, technical tone with clear explanations.",
    Tone.CREATIVE: "Write in an imaginative, expressive tone.",
}

LENGTH_DIRECTIVES: Dict[Length, str] = {
    Length.SHORT: "Keep it concise (~100 words).",
    Length.MEDIUM: "Balanced detail (~300 words).",
    Length.LONG: "Comprehensive (~600-1000 words).",
}

LENGTH_MAX_TOKENS: Dict[Length, int] = {
    Length.SHORT: 300,
    Length.MEDIUM: 600,
    Length.LONG: 1200,
}

GRAMMAR_INSTRUCTION = (
    "You are a professional grammar and style editor. Correct grammar, spelling, "
    "punctuation and minor stylistic issues while preserving the original meaning "
    "and tone. RETURN ONLY THE CORRECTED TEXT AND NOTHING ELSE (no explanations, "
    "no JSON, no metadata)."
)
GRAMMAR_MIN_TOKENS = 300
GRAMMAR_MAX_TOKENS = 1200

ENHANCEMENT_PERSONAS: Dict[EnhancementType, str] = {
    EnhancementType.EXPAND: "You are a thorough writer who adds depth without padding.",
    EnhancementType.SIMPLIFY: "You are a plain-language editor writing for a general audience.",
    EnhancementType.IMPROVE: "You are a senior editor focused on clarity and flow.",
    EnhancementType.SUMMARIZE: "You are a concise summarizer.",
}

ENHANCEMENT_INSTRUCTIONS: Dict[EnhancementType, str] = {
    EnhancementType.EXPAND: "Expand the following text with more detail and examples while preserving meaning:",
    EnhancementType.SIMPLIFY: "Simplify the following text for a general audience while preserving the key points:",
    EnhancementType.IMPROVE: "Improve clarity, flow, and impact of the following text:",
    EnhancementType.SUMMARIZE: "Summarize the following text concisely:",
}
ENHANCEMENT_TEMPERATURE = 0.6
ENHANCEMENT_MAX_TOKENS = 900

TITLES_TEMPLATE = (
    "Generate {count} SEO-friendly titles (one per line) for the content below. "
    "Return plain text, one title per line."
)
TITLES_TEMPERATURE = 0.8
TITLES_MAX_TOKENS = 300


def _join(system: str, body: str) -> str:
    return f"{system}\n\n{body}"


def content_system_instruction(tone: Tone, length: Length) -> str:
    """Persona followed by the tone and length directives."""
    return f"{WRITER_PERSONA} {TONE_DIRECTIVES[tone]} {LENGTH_DIRECTIVES[length]}"


def content_prompt(prompt: str, tone: Tone, length: Length) -> str:
    return _join(content_system_instruction(tone, length), prompt)


def content_max_tokens(length: Length) -> int:
    return LENGTH_MAX_TOKENS[length]


def grammar_prompt(text: str) -> str:
    return _join(GRAMMAR_INSTRUCTION, f"Text:\n{text}")


def grammar_max_tokens(text: str) -> int:
    """Half the character count, clamped to [300, 1200]."""
    return min(GRAMMAR_MAX_TOKENS, max(GRAMMAR_MIN_TOKENS, math.ceil(len(text) / 2)))


def enhancement_prompt(text: str, enhancement_type: EnhancementType) -> str:
    return _join(
        ENHANCEMENT_PERSONAS[enhancement_type],
        f"{ENHANCEMENT_INSTRUCTIONS[enhancement_type]}\n\n{text}"
    )


def titles_prompt(content: str, count: int) -> str:
    return f"{TITLES_TEMPLATE.format(count=count)}\n\n{content}"
