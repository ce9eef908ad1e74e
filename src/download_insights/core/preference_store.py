"""Key-value stores backing persisted operator preferences."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Dict, Mapping, Optional

from download_insights.domain.interfaces import IPreferenceStore

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS preferences (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""

_UPSERT_SQL = """
INSERT INTO preferences (key, value)
VALUES (?, ?)
ON CONFLICT(key) DO UPDATE SET value=excluded.value;
"""

_SELECT_SQL = "SELECT value FROM preferences WHERE key = ?;"

_SELECT_ALL_SQL = "SELECT key, value FROM preferences ORDER BY key ASC;"


class InMemoryPreferenceStore(IPreferenceStore):
    """Dictionary-backed store for tests and ephemeral sessions."""

    def __init__(self, initial: Optional[Mapping[str, str]] = None) -> None:
        self._values: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def snapshot(self) -> Dict[str, str]:
        return dict(self._values)


class SQLitePreferenceStore(IPreferenceStore):
    """Lightweight store focused on persistence only."""

    def __init__(self, db_path: str | Path):
        self._db_path = str(db_path)
        self._ensure_schema()

    def get(self, key: str) -> Optional[str]:
        with sqlite3.connect(self._db_path) as conn:
            row = conn.execute(_SELECT_SQL, (key,)).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        with sqlite3.connect(self._db_path) as conn:
            conn.execute(_UPSERT_SQL, (key, value))
            conn.commit()

    def snapshot(self) -> Dict[str, str]:
        with sqlite3.connect(self._db_path) as conn:
            rows = conn.execute(_SELECT_ALL_SQL).fetchall()
        return {key: value for key, value in rows}

    def _ensure_schema(self) -> None:
        Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        with sqlite3.connect(self._db_path) as conn:
            conn.execute(_CREATE_TABLE_SQL)
            conn.commit()
