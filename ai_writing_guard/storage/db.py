"""
Database connection management.

Provides SQLite connections for the usage ledger.
"""

import sqlite3
from pathlib import Path

DEFAULT_DB_PATH = "ai_writing_guard.db"

# Seconds a connection waits on a locked database before failing
BUSY_TIMEOUT = 5.0


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Open a SQLite connection with foreign keys enabled.

    Connections are short-lived and never shared between threads; the
    background recorder opens its own.

    Args:
        db_path: Path to SQLite database file

    Returns:
        SQLite connection
    """
    path = Path(db_path)
    conn = sqlite3.connect(str(path), timeout=BUSY_TIMEOUT)
    conn.execute("PRAGMA foreign_keys = ON")
    return conn
