"""Connections to the Ledger SQLite file."""

import sqlite3
from contextlib import contextmanager
from typing import List
from config import Config, get_migrations_dir
from db.migrator import apply_pending
from logger import get_logger

logger = get_logger()

# Seconds a connection waits on a lock held by the model thread's writes
BUSY_TIMEOUT = 10.0


class DatabaseManager:
    """Hands out short-lived connections to the configured database file.

    Every ``connect()`` opens a new connection, so the assistant's worker
    thread and the CLI thread never share one.

    Args:
        config: Application configuration object.
    """

    def __init__(self, config: Config):
        self.config = config

    @contextmanager
    def connect(self):
        """Get a database connection with automatic cleanup.

        Yields:
            sqlite3.Connection: Database connection.
        """
        db_path = self.config.db_path
        db_path.parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(db_path, timeout=BUSY_TIMEOUT)
        try:
            yield conn
        finally:
            conn.close()

    def ensure_schema(self) -> List[str]:
        """Create or upgrade the schema before first use.

        Returns:
            Names of the migrations that were applied.
        """
        with self.connect() as conn:
            applied = apply_pending(conn, self.get_migrations_dir())
        if applied:
            logger.debug(f"Database at {self.get_db_path()} upgraded: {', '.join(applied)}")
        return applied

    def get_db_path(self):
        return self.config.db_path

    def get_migrations_dir(self):
        return get_migrations_dir()
