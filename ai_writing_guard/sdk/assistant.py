"""
Writing assistant service.

Runs one request end to end:
caller -> validation -> quota governor -> generation facade -> usage ledger
and returns the response shapes consumed by the HTTP layer.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from ..config.loader import AppConfig, provider_settings
from ..core.errors import Unauthenticated
from ..core.generation import GenerationFacade, GenerationResult, ModelRoute
from ..core.quota import Caller, RateGovernor, SubscriptionTierResolver, TierResolver
from ..core.requests import (
    GenerationRequest,
    content_request,
    enhancement_request,
    grammar_request,
    titles_request,
)
from ..providers import build_provider
from ..storage.recorder import UsageRecorder
from ..storage.repository import UsageLedger

logger = logging.getLogger(__name__)


class WritingAssistant:
    """AI writing features guarded by quotas and metered in the ledger.

    Usage is recorded after every successful call without delaying the
    response; a failed ledger write never fails the call.
    """

    def __init__(
        self,
        facade: GenerationFacade,
        governor: RateGovernor,
        ledger: UsageLedger,
        recorder: Optional[UsageRecorder] = None,
        clock=datetime.now
    ):
        """Initialize the assistant.

        Args:
            facade: Generation facade (prompting and provider fallback)
            governor: Per-caller quota governor
            ledger: Usage ledger used for summaries
            recorder: Background writer (defaults to one over ``ledger``)
            clock: Source of response timestamps
        """
        self.facade = facade
        self.governor = governor
        self.ledger = ledger
        self.recorder = recorder or UsageRecorder(ledger)
        self.clock = clock

    def generate(
        self,
        caller: Caller,
        prompt: Any,
        tone: Any = None,
        length: Any = None,
        creativity: Any = None,
        post_id: Optional[int] = None
    ) -> Dict[str, Any]:
        self._require_identity(caller)
        request = content_request(prompt, tone, length, creativity)
        result = self._execute(caller, request, "generate", post_id)
        return {
            "content": result.text,
            "tokensUsed": result.tokens_used,
            "timestamp": result.timestamp.isoformat(),
        }

    def grammar(self, caller: Caller, text: Any, post_id: Optional[int] = None) -> Dict[str, Any]:
        self._require_identity(caller)
        request = grammar_request(text)
        result = self._execute(caller, request, "grammar", post_id)
        return {
            "correctedText": result.text,
            "changes": list(result.changes),
            "tokensUsed": result.tokens_used,
            "timestamp": result.timestamp.isoformat(),
        }

    def enhance(
        self,
        caller: Caller,
        text: Any,
        enhancement_type: Any,
        post_id: Optional[int] = None
    ) -> Dict[str, Any]:
        self._require_identity(caller)
        request = enhancement_request(text, enhancement_type)
        result = self._execute(caller, request, "enhance", post_id)
        return {
            "enhancedText": result.text,
            "tokensUsed": result.tokens_used,
            "timestamp": result.timestamp.isoformat(),
        }

    def titles(
        self,
        caller: Caller,
        content: Any,
        count: Any = None,
        post_id: Optional[int] = None
    ) -> Dict[str, Any]:
        self._require_identity(caller)
        request = titles_request(content, count)
        result = self._execute(caller, request, "titles", post_id)
        return {
            "titles": list(result.titles),
            "tokensUsed": result.tokens_used,
            "timestamp": result.timestamp.isoformat(),
        }

    def usage(self, caller: Caller, period: Any = 30) -> Dict[str, Any]:
        """Usage analytics for the caller over the trailing ``period`` days.

        ``period`` may be an int or a numeric string from a query parameter.

        Raises:
            Unauthenticated: If the caller has no user identity
            InvalidPeriod: If period is outside 1-365
        """
        self._require_identity(caller)
        summary = self.ledger.summarize(caller.user_id, period)
        return {
            "period": f"{summary.window_days} days",
            "total": {
                "requests": summary.total_requests,
                "tokens": summary.total_tokens,
            },
            "byFeature": [
                {
                    "featureType": f.feature_type,
                    "requestCount": f.request_count,
                    "totalTokens": f.total_tokens,
                    "avgTokensPerRequest": f.avg_tokens_per_request,
                }
                for f in summary.by_feature
            ],
            "dailyUsage": [
                {"date": d.date.isoformat(), "requests": d.requests, "tokens": d.tokens}
                for d in summary.daily
            ],
            "timestamp": self.clock().isoformat(),
        }

    def close(self) -> None:
        """Flush pending usage records."""
        self.recorder.close()

    def _require_identity(self, caller: Caller) -> None:
        if not caller.is_authenticated:
            raise Unauthenticated("Authentication required")

    def _execute(
        self,
        caller: Caller,
        request: GenerationRequest,
        endpoint: str,
        post_id: Optional[int]
    ) -> GenerationResult:
        self.governor.admit(caller, endpoint)
        result = self.facade.run(request)
        self.recorder.record(
            user_id=caller.user_id,
            post_id=post_id,
            feature_type=request.feature_tag,
            tokens_used=result.tokens_used,
            model=result.model or None,
            timestamp=result.timestamp
        )
        return result


def build_assistant(
    config: AppConfig,
    tier_resolver: Optional[TierResolver] = None,
    environ: Optional[Mapping[str, str]] = None
) -> WritingAssistant:
    """Wire providers, governor and ledger from configuration.

    The ledger schema is created if missing.
    """
    slots = config.provider
    clients = {}

    def route_for(slot) -> ModelRoute:
        if slot.backend not in clients:
            clients[slot.backend] = build_provider(provider_settings(slot, config, environ))
        return ModelRoute(provider=clients[slot.backend], model=slot.model)

    primary = route_for(slots.primary)
    fallback = route_for(slots.fallback) if slots.fallback is not None else None

    ledger = UsageLedger(config.db_path)
    ledger.initialize()

    logger.info(
        "Writing assistant ready (primary=%s, fallback=%s, ledger=%s)",
        primary.label, fallback.label if fallback else None, config.db_path
    )
    return WritingAssistant(
        facade=GenerationFacade(primary, fallback),
        governor=RateGovernor(config.quota.to_policy(), tier_resolver or SubscriptionTierResolver()),
        ledger=ledger
    )
