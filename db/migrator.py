"""Ordered SQL migrations tracked in the schema_migrations table."""

import sqlite3
from pathlib import Path
from typing import Dict, List, Set

from logger import get_logger

logger = get_logger()


def init_schema_migrations_table(conn: sqlite3.Connection) -> None:
    conn.execute("""
        CREATE TABLE IF NOT EXISTS schema_migrations (
            migration_file TEXT PRIMARY KEY,
            applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)
    conn.commit()


def get_applied_migrations(conn: sqlite3.Connection) -> Set[str]:
    cursor = conn.execute(
        "SELECT migration_file FROM schema_migrations ORDER BY migration_file"
    )
    return {row[0] for row in cursor.fetchall()}


def get_available_migrations(migrations_dir: Path) -> List[str]:
    """Names of the *.sql files in migrations_dir, in apply order."""
    if not migrations_dir.exists():
        return []
    return sorted(path.name for path in migrations_dir.glob("*.sql"))


def migration_status(conn: sqlite3.Connection, migrations_dir: Path) -> Dict[str, bool]:
    """Map every available migration to whether it has been applied."""
    init_schema_migrations_table(conn)
    applied = get_applied_migrations(conn)
    return {name: name in applied for name in get_available_migrations(migrations_dir)}


def apply_migration(conn: sqlite3.Connection, migrations_dir: Path, migration_file: str) -> None:
    """Run one migration script and record it.

    Raises:
        sqlite3.Error: If the script fails; the recording is rolled back.
    """
    sql = (migrations_dir / migration_file).read_text(encoding="utf-8")

    try:
        conn.executescript(sql)
        conn.execute(
            "INSERT INTO schema_migrations (migration_file) VALUES (?)",
            (migration_file,),
        )
        conn.commit()
        logger.info(f"Applied migration: {migration_file}")
    except Exception as e:
        conn.rollback()
        logger.error(f"Error applying migration {migration_file}: {e}")
        raise


def apply_pending(conn: sqlite3.Connection, migrations_dir: Path) -> List[str]:
    """Apply every migration not yet recorded.

    Returns:
        Names of the migrations applied, in order.
    """
    pending = [
        name
        for name, applied in migration_status(conn, migrations_dir).items()
        if not applied
    ]

    for migration in pending:
        apply_migration(conn, migrations_dir, migration)

    return pending
