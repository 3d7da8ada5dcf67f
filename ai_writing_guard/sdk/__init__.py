"""
SDK for AI Writing Guard.

Provides programmatic access to the guarded writing features.
"""

from .assistant import WritingAssistant, build_assistant

__all__ = ["WritingAssistant", "build_assistant"]
