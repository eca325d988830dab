"""
database.py — SQLite storage for the report service.

The service keeps only small auxiliary state locally (the plantings
themselves live behind the plantings REST API), so the schema is a single
key-value `settings` table. Saved report configurations are one JSON list
under the 'saved_reports' key (see utils/config_store.py).

Uses WAL mode for concurrent read performance.
"""

import os
import sqlite3

from flask import current_app, has_app_context


def get_db_path() -> str:
    """Database path: the app's DATABASE setting, else env var, else default."""
    if has_app_context() and current_app.config.get('DATABASE'):
        return current_app.config['DATABASE']
    default_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'data', 'microgreens.db')
    return os.environ.get('MICROGREENS_DB_PATH', default_path)


def get_db():
    """Get a database connection with WAL mode enabled."""
    db_path = get_db_path()
    db_dir = os.path.dirname(db_path)
    if db_dir:
        os.makedirs(db_dir, exist_ok=True)
    conn = sqlite3.connect(db_path)
    conn.execute("PRAGMA journal_mode=WAL")
    conn.row_factory = sqlite3.Row
    return conn


def init_db():
    """Create the settings table if it doesn't exist. Idempotent."""
    conn = get_db()
    conn.execute("""
        CREATE TABLE IF NOT EXISTS settings (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)
    conn.commit()
    conn.close()


def get_setting(key, default=None):
    """Get a setting value by key."""
    conn = get_db()
    row = conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
    conn.close()
    if row:
        return row['value']
    return default


def update_setting(key, value):
    """Insert or replace a setting value."""
    conn = get_db()
    try:
        conn.execute(
            """
            INSERT INTO settings (key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = CURRENT_TIMESTAMP
            """,
            (key, value)
        )
        conn.commit()
    finally:
        conn.close()
