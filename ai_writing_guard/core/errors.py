"""
Error taxonomy for the writing assistant.

Every caller-visible failure carries a stable code, a human-readable
message and a numeric status so the HTTP layer can render it directly.
"""

import traceback
from datetime import datetime
from typing import Any, Dict, Optional


class WritingGuardError(Exception):
    """Base class for all caller-visible errors."""
    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Any] = None
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.details = details


class ValidationError(WritingGuardError):
    """Malformed input, rejected before any provider call."""
    code = "VALIDATION_ERROR"
    status_code = 400


class Unauthenticated(WritingGuardError):
    code = "UNAUTHENTICATED"
    status_code = 401


class Forbidden(WritingGuardError):
    code = "FORBIDDEN"
    status_code = 403


class RateLimitExceeded(WritingGuardError):
    """Quota breach. Retryable once the caller's window resets."""
    code = "AI_RATE_LIMIT_EXCEEDED"
    status_code = 429

    def __init__(
        self,
        message: str,
        key: str,
        endpoint: str,
        retry_after: int,
        code: Optional[str] = None
    ):
        super().__init__(
            message,
            code=code,
            details={"key": key, "endpoint": endpoint, "retry_after": retry_after}
        )
        self.key = key
        self.endpoint = endpoint
        self.retry_after = retry_after


class ProviderError(WritingGuardError):
    """Upstream generation failure with a normalized status."""
    code = "AI_PROVIDER_ERROR"
    status_code = 500


class ProviderUnavailable(ProviderError):
    """Client or credentials are not configured."""
    code = "AI_SERVICE_UNAVAILABLE"
    status_code = 503


class ProviderTimeout(ProviderError):
    code = "AI_PROVIDER_TIMEOUT"
    status_code = 504


# Failure codes per operation; enhancement subtypes share one code
FEATURE_ERROR_CODES = {
    "generate": "AI_GENERATE_ERROR",
    "grammar": "AI_GRAMMAR_ERROR",
    "enhance": "AI_ENHANCE_ERROR",
    "titles": "AI_TITLES_ERROR",
}


class GenerationFailed(ProviderError):
    """Both the primary and the fallback attempt failed."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        cause: Optional[Exception] = None,
        feature: Optional[str] = None
    ):
        if status_code == 429:
            code = "AI_QUOTA_EXCEEDED"
        elif status_code == 503:
            code = "AI_SERVICE_UNAVAILABLE"
        else:
            operation = (feature or "generate").split("_", 1)[0]
            code = FEATURE_ERROR_CODES.get(operation, "AI_GENERATE_ERROR")
        super().__init__(
            message,
            code=code,
            status_code=status_code,
            details=str(cause) if cause is not None else None
        )
        self.feature = feature


class InvalidPeriod(WritingGuardError):
    code = "INVALID_PERIOD"
    status_code = 400


def error_envelope(exc: Exception, debug: bool = False) -> Dict[str, Any]:
    """Render any exception as the caller-visible error body.

    Unknown exceptions are reported as a generic 500 so internal detail
    never leaks. Details and the stack trace are only attached when
    ``debug`` is set (non-production builds).

    Args:
        exc: The exception to render
        debug: Whether to attach internal detail

    Returns:
        Dictionary of the form {"error": {...}}
    """
    if isinstance(exc, WritingGuardError):
        body = {
            "code": exc.code,
            "message": exc.message,
            "statusCode": exc.status_code,
        }
        details = exc.details
    else:
        body = {
            "code": WritingGuardError.code,
            "message": "Internal server error",
            "statusCode": WritingGuardError.status_code,
        }
        details = str(exc)

    body["timestamp"] = datetime.now().isoformat()
    if debug:
        body["details"] = details
        body["stack"] = "".join(
            traceback.format_exception(type(exc), exc, exc.__traceback__)
        )
    return {"error": body}
