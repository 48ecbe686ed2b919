# packforge/db/database.py
from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

__all__ = ["SCHEMA_SQL", "ContentDatabase"]


SCHEMA_SQL = """
-- One row per (content type, id); data_json is the parsed content document
CREATE TABLE IF NOT EXISTS content_rows (
    type TEXT NOT NULL,
    id TEXT NOT NULL,
    source_path TEXT,                        -- Root-relative path the row was derived from
    data_json TEXT NOT NULL,
    PRIMARY KEY (type, id)
);
"""



class ContentDatabase:
    """
    Structured content database.

    Works on an in-memory copy loaded from the packaged database file, or
    from the host's baseline database when no packaged copy exists yet.
    Nothing reaches disk until flush().
    """

    def __init__(self, dbPath: Path, baselinePath: Path | None = None) -> None:
        self.dbPath = dbPath
        self.baselinePath = baselinePath
        self.upserts = 0
        self._conn = self._openWorkingCopy(dbPath if dbPath.is_file() else baselinePath)

    def __enter__(self) -> ContentDatabase:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    @staticmethod
    def _openWorkingCopy(source: Path | None) -> sqlite3.Connection:
        conn = sqlite3.connect(":memory:")
        conn.row_factory = sqlite3.Row
        if source is not None and source.is_file():
            src = sqlite3.connect(f"file:{source.as_posix()}?mode=ro", uri=True)
            try:
                src.backup(conn)
            finally:
                src.close()
            logger.debug("Loaded content database from '%s'", source)
        conn.executescript(SCHEMA_SQL)
        return conn

    def resetToBaseline(self) -> None:
        """Throws away every packaged row and starts again from the baseline database."""
        self._conn.close()
        self._conn = self._openWorkingCopy(self.baselinePath)
        logger.info("Content database reset to baseline")

    def upsert(self, contentType: str, contentId: str, data: Any, sourcePath: str | None = None) -> None:
        self._conn.execute(
            """
            INSERT INTO content_rows (type, id, source_path, data_json) VALUES (?, ?, ?, ?)
            ON CONFLICT(type, id) DO UPDATE SET
                source_path = excluded.source_path,
                data_json = excluded.data_json
            """,
            (contentType, contentId, sourcePath, json.dumps(data, ensure_ascii=False, sort_keys=True)),
        )
        self.upserts += 1

    def fetch(self, contentType: str, contentId: str) -> Any | None:
        row = self._conn.execute(
            "SELECT data_json FROM content_rows WHERE type = ? AND id = ?",
            (contentType, contentId),
        ).fetchone()
        return json.loads(row["data_json"]) if row is not None else None

    def sourcePathOf(self, contentType: str, contentId: str) -> str | None:
        row = self._conn.execute(
            "SELECT source_path FROM content_rows WHERE type = ? AND id = ?",
            (contentType, contentId),
        ).fetchone()
        return row["source_path"] if row is not None else None

    def rowCount(self) -> int:
        return self._conn.execute("SELECT COUNT(*) FROM content_rows").fetchone()[0]

    def flush(self) -> None:
        """Writes the working copy over the packaged database file."""
        self._conn.commit()
        self.dbPath.parent.mkdir(parents=True, exist_ok=True)
        dst = sqlite3.connect(str(self.dbPath))
        try:
            self._conn.backup(dst)
        finally:
            dst.close()
        logger.info("Wrote content database '%s'", self.dbPath)

    def close(self) -> None:
        self._conn.close()
