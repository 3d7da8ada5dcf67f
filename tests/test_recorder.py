"""
Tests for background usage recording.
"""

import logging
import os
import tempfile
import threading
from datetime import datetime
from unittest.mock import Mock

from ai_writing_guard.storage.recorder import UsageRecorder
from ai_writing_guard.storage.repository import UsageLedger


class TestUsageRecorder:
    """Test record-and-forget semantics."""

    def setup_method(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.ledger = UsageLedger(os.path.join(self.temp_dir.name, "test.db"))
        self.ledger.initialize()

    def teardown_method(self):
        self.temp_dir.cleanup()

    def test_records_are_written_in_background(self):
        recorder = UsageRecorder(self.ledger)

        future = recorder.record(user_id=3, feature_type="titles", tokens_used=80, post_id=9)
        recorder.close()

        assert future.done()
        records = self.ledger.recent(3)
        assert len(records) == 1
        assert records[0].feature_type == "titles"
        assert records[0].post_id == 9

    def test_record_does_not_wait_for_write(self):
        release = threading.Event()
        ledger = Mock()
        ledger.record.side_effect = lambda record: release.wait(5)
        recorder = UsageRecorder(ledger)

        future = recorder.record(user_id=1, feature_type="generate", tokens_used=1)

        assert not future.done()
        release.set()
        recorder.close()
        assert ledger.record.call_count == 1

    def test_write_failure_is_logged_and_swallowed(self, caplog):
        ledger = Mock()
        ledger.record.side_effect = RuntimeError("database is locked")
        recorder = UsageRecorder(ledger)

        with caplog.at_level(logging.ERROR, logger="ai_writing_guard.storage.recorder"):
            future = recorder.record(user_id=1, feature_type="generate", tokens_used=5)
            recorder.close()

        assert future.exception() is None
        assert "Failed to log AI usage for user 1" in caplog.text

    def test_none_tokens_recorded_as_zero(self):
        recorder = UsageRecorder(self.ledger)

        recorder.record(user_id=1, feature_type="grammar", tokens_used=None, timestamp=datetime(2024, 1, 1))
        recorder.close()

        assert self.ledger.recent(1)[0].tokens_used == 0

    def test_invalid_record_is_dropped(self, caplog):
        recorder = UsageRecorder(self.ledger)

        with caplog.at_level(logging.ERROR, logger="ai_writing_guard.storage.recorder"):
            assert recorder.record(user_id=1, feature_type="", tokens_used=5) is None
        recorder.close()

        assert self.ledger.recent(1) == []
        assert "Invalid usage record" in caplog.text

    def test_record_after_close_is_dropped(self):
        recorder = UsageRecorder(self.ledger)
        recorder.close()

        assert recorder.record(user_id=1, feature_type="generate", tokens_used=5) is None
