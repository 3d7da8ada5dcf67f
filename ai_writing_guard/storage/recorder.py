"""
Background usage recording.

Ledger writes run on a single worker thread so the caller's response
never waits on them. A failed write is logged and dropped; it never
reaches the caller.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from typing import Optional

from .models import UsageRecord
from .repository import UsageLedger

logger = logging.getLogger(__name__)


class UsageRecorder:
    """Record-and-forget writer in front of a UsageLedger."""

    def __init__(self, ledger: UsageLedger):
        self.ledger = ledger
        # One worker keeps ledger writes single-writer
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="usage-recorder")
        self._closed = False

    def record(
        self,
        user_id: int,
        feature_type: str,
        tokens_used: int,
        post_id: Optional[int] = None,
        model: Optional[str] = None,
        timestamp: Optional[datetime] = None
    ) -> Optional[Future]:
        """Queue a usage record and return immediately.

        Returns:
            Future of the write, or None if the record was not queued
        """
        if self._closed:
            logger.error("Usage recorder is closed; dropping %s record for user %s", feature_type, user_id)
            return None

        try:
            record = UsageRecord(
                user_id=user_id,
                post_id=post_id,
                feature_type=feature_type,
                tokens_used=tokens_used or 0,
                model=model,
                timestamp=timestamp or datetime.now()
            )
        except ValueError:
            logger.exception("Invalid usage record for user %s", user_id)
            return None

        return self._executor.submit(self._write, record)

    def _write(self, record: UsageRecord) -> None:
        try:
            self.ledger.record(record)
        except Exception:
            logger.exception(
                "Failed to log AI usage for user %s (%s, %d tokens)",
                record.user_id, record.feature_type, record.tokens_used
            )

    def close(self) -> None:
        """Wait for queued writes and stop the worker."""
        self._closed = True
        self._executor.shutdown(wait=True)
