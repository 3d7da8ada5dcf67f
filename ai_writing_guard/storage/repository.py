"""
Usage ledger persistence.

The ai_usage_log table is an append-only ledger of completed generation
calls. Rows are only ever removed by purging a deleted user.
"""

from datetime import date, datetime, timedelta
from typing import Any, List, Optional

from .db import DEFAULT_DB_PATH, get_connection
from .models import DailyUsage, FeatureUsage, UsageRecord, UsageSummary
from ai_writing_guard.core.errors import InvalidPeriod

MIN_WINDOW_DAYS = 1
MAX_WINDOW_DAYS = 365


def initialize_schema(db_path: str = DEFAULT_DB_PATH) -> None:
    """Create the ai_usage_log table and its index if missing.

    Args:
        db_path: Path to SQLite database file
    """
    conn = get_connection(db_path)
    try:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS ai_usage_log (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL,
                post_id INTEGER,
                feature_type TEXT NOT NULL,
                tokens_used INTEGER NOT NULL,
                model TEXT,
                timestamp TEXT NOT NULL
            )
        """)
        conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_ai_usage_user
            ON ai_usage_log(user_id, timestamp)
        """)
        conn.commit()
    finally:
        conn.close()


def insert_usage_record(record: UsageRecord, db_path: str = DEFAULT_DB_PATH) -> None:
    """Append a single usage record to the ledger.

    Args:
        record: The usage record to store
        db_path: Path to SQLite database file
    """
    conn = get_connection(db_path)
    try:
        conn.execute("""
            INSERT INTO ai_usage_log
            (user_id, post_id, feature_type, tokens_used, model, timestamp)
            VALUES (?, ?, ?, ?, ?, ?)
        """, (
            record.user_id,
            record.post_id,
            record.feature_type,
            record.tokens_used,
            record.model,
            record.timestamp.isoformat()
        ))
        conn.commit()
    finally:
        conn.close()


def fetch_usage_records(
    user_id: int,
    limit: int = 100,
    db_path: str = DEFAULT_DB_PATH
) -> List[UsageRecord]:
    """Fetch a user's most recent usage records, newest first."""
    conn = get_connection(db_path)
    try:
        cursor = conn.execute("""
            SELECT user_id, post_id, feature_type, tokens_used, model, timestamp
            FROM ai_usage_log
            WHERE user_id = ?
            ORDER BY timestamp DESC, id DESC
            LIMIT ?
        """, (user_id, limit))
        return [
            UsageRecord(
                user_id=row[0],
                post_id=row[1],
                feature_type=row[2],
                tokens_used=row[3],
                model=row[4],
                timestamp=datetime.fromisoformat(row[5])
            )
            for row in cursor.fetchall()
        ]
    finally:
        conn.close()


def parse_period(value: Any) -> int:
    """Window length in days from an int or a numeric string such as "30".

    Raises:
        InvalidPeriod: If the value is not a whole number in 1-365
    """
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            value = None
    if (isinstance(value, bool) or not isinstance(value, int)
            or not MIN_WINDOW_DAYS <= value <= MAX_WINDOW_DAYS):
        raise InvalidPeriod(
            f"Period must be between {MIN_WINDOW_DAYS} and {MAX_WINDOW_DAYS} days"
        )
    return value


def summarize_usage(
    user_id: int,
    window_days: Any = 30,
    db_path: str = DEFAULT_DB_PATH,
    now: Optional[datetime] = None
) -> UsageSummary:
    """Aggregate one user's usage over a trailing window.

    Totals, the per-feature breakdown and the daily series all cover the
    same window. Aggregation never crosses users.

    Args:
        user_id: User whose records are aggregated
        window_days: Trailing window length in days (1-365), int or numeric string
        db_path: Path to SQLite database file
        now: End of the window (defaults to the current time)

    Returns:
        UsageSummary with features ordered by request count and days
        ordered newest first

    Raises:
        InvalidPeriod: If window_days is outside 1-365
    """
    window_days = parse_period(window_days)

    cutoff = ((now or datetime.now()) - timedelta(days=window_days)).isoformat()
    params = (user_id, cutoff)

    conn = get_connection(db_path)
    try:
        row = conn.execute("""
            SELECT COUNT(*), SUM(tokens_used)
            FROM ai_usage_log
            WHERE user_id = ? AND timestamp >= ?
        """, params).fetchone()

        feature_rows = conn.execute("""
            SELECT feature_type, COUNT(*) AS request_count,
                   SUM(tokens_used), AVG(tokens_used)
            FROM ai_usage_log
            WHERE user_id = ? AND timestamp >= ?
            GROUP BY feature_type
            ORDER BY request_count DESC, feature_type ASC
        """, params).fetchall()

        # ISO timestamps start with YYYY-MM-DD
        daily_rows = conn.execute("""
            SELECT substr(timestamp, 1, 10) AS day, COUNT(*), SUM(tokens_used)
            FROM ai_usage_log
            WHERE user_id = ? AND timestamp >= ?
            GROUP BY day
            ORDER BY day DESC
        """, params).fetchall()
    finally:
        conn.close()

    return UsageSummary(
        user_id=user_id,
        window_days=window_days,
        total_requests=row[0] or 0,
        total_tokens=row[1] or 0,
        by_feature=[
            FeatureUsage(
                feature_type=r[0],
                request_count=r[1],
                total_tokens=r[2] or 0,
                avg_tokens_per_request=round(float(r[3] or 0), 2)
            )
            for r in feature_rows
        ],
        daily=[
            DailyUsage(date=date.fromisoformat(r[0]), requests=r[1], tokens=r[2] or 0)
            for r in daily_rows
        ]
    )


def purge_user_usage(user_id: int, db_path: str = DEFAULT_DB_PATH) -> int:
    """Delete every record owned by a user that is being deleted.

    Returns:
        Number of records removed
    """
    conn = get_connection(db_path)
    try:
        cursor = conn.execute("DELETE FROM ai_usage_log WHERE user_id = ?", (user_id,))
        conn.commit()
        return cursor.rowcount
    finally:
        conn.close()


class UsageLedger:
    """Ledger bound to one database file.

    Thin object wrapper over the module functions so collaborators can
    be handed a single ledger instance.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        self.db_path = db_path

    def initialize(self) -> None:
        initialize_schema(self.db_path)

    def record(self, record: UsageRecord) -> None:
        insert_usage_record(record, self.db_path)

    def recent(self, user_id: int, limit: int = 100) -> List[UsageRecord]:
        return fetch_usage_records(user_id, limit, self.db_path)

    def summarize(self, user_id: int, window_days: Any = 30, now: Optional[datetime] = None) -> UsageSummary:
        return summarize_usage(user_id, window_days, self.db_path, now)

    def purge(self, user_id: int) -> int:
        return purge_user_usage(user_id, self.db_path)
