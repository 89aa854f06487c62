"""Helper utilities for tests."""

from pathlib import Path
import sqlite3
from datetime import datetime

from db.migrator import apply_pending
from llm.providers.base import LLMProvider

# Fixed "now" for everything the assistant logs
NOW = datetime(2025, 3, 15, 12, 30, 0)


def run_migrations(conn: sqlite3.Connection, migrations_dir: Path) -> None:
    """Run all SQL migrations in order.

    Args:
        conn: SQLite connection to run migrations against.
        migrations_dir: Path to directory containing .sql migration files.
    """
    apply_pending(conn, migrations_dir)


class FakeRunner:
    """Stands in for ModelRunner: records prompts, replies only when told to.

    Tests call ``complete(text)`` or ``fail(error)`` to deliver the outcome of
    the oldest pending request on the test's own thread.
    """

    def __init__(self, ready=True, progress=1.0):
        self.is_ready = ready
        self.download_progress = progress
        self.requests = []
        self._pending = []

    @property
    def is_generating(self):
        return bool(self._pending)

    def submit(self, messages, on_complete, on_error):
        self.requests.append(messages)
        self._pending.append((on_complete, on_error))

    def complete(self, text):
        on_complete, _ = self._pending.pop(0)
        on_complete(text)

    def fail(self, error):
        _, on_error = self._pending.pop(0)
        on_error(error)

    def last_prompt(self):
        """Concatenated content of the most recent request."""
        return "\n".join(m["content"] for m in self.requests[-1])


class ScriptedProvider(LLMProvider):
    """Provider returning canned replies in order."""

    def __init__(self, replies, ready=True):
        self.replies = list(replies)
        self.ready = ready
        self.calls = []

    @property
    def is_ready(self):
        return self.ready

    def generate(self, messages):
        self.calls.append(messages)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply
