"""SQLite settings store for MindCanvas.

Mind maps live on the document server; locally we only keep small
key/value settings (the login session, window preferences, last export
directory).
"""

import sqlite3
import json
from pathlib import Path
from typing import Optional, Any

from mindcanvas.config import DEFAULT_DATA_DIR


def get_data_dir(data_dir: Optional[Path] = None) -> Path:
    """Get the application data directory (ClientConfig.data_dir when given)."""
    data_dir = Path(data_dir or DEFAULT_DATA_DIR)
    data_dir.mkdir(parents=True, exist_ok=True)
    (data_dir / "exports").mkdir(exist_ok=True)
    return data_dir


def get_db_path(data_dir: Optional[Path] = None) -> Path:
    """Get the database file path."""
    return get_data_dir(data_dir) / "mindcanvas.db"


class Database:
    """Database manager for MindCanvas."""

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = db_path or get_db_path()
        self._conn: Optional[sqlite3.Connection] = None
        self._init_db()

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(str(self.db_path))
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode = WAL")
        return self._conn

    def _init_db(self):
        """Initialize the database schema."""
        cursor = self.conn.cursor()
        cursor.executescript("""
            -- App settings table
            CREATE TABLE IF NOT EXISTS settings (
                key TEXT PRIMARY KEY,
                value JSON
            );
        """)
        self.conn.commit()

    def close(self):
        """Close the database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    # ==================== Settings Operations ====================

    def get_raw_setting(self, key: str) -> Optional[str]:
        """Stored text for key, without decoding."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT value FROM settings WHERE key = ?", (key,))
        row = cursor.fetchone()
        return row["value"] if row else None

    def get_setting(self, key: str, default: Any = None) -> Any:
        """Get an application setting."""
        raw = self.get_raw_setting(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            return default

    def set_setting(self, key: str, value: Any):
        """Set an application setting."""
        cursor = self.conn.cursor()
        cursor.execute(
            "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)",
            (key, json.dumps(value))
        )
        self.conn.commit()

    def set_raw_setting(self, key: str, raw: str):
        cursor = self.conn.cursor()
        cursor.execute(
            "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)",
            (key, raw)
        )
        self.conn.commit()

    def delete_setting(self, key: str):
        cursor = self.conn.cursor()
        cursor.execute("DELETE FROM settings WHERE key = ?", (key,))
        self.conn.commit()
