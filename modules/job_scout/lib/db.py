from __future__ import annotations

import contextlib
import os
import sqlite3

from .logging_bridge import error as log_error
from .models import JobPosting
from .utils import now_iso

# ---- Public API -------------------------------------------------------------


def init_db(sqlite_path: str) -> None:
    """
    Ensure the SQLite ledger and schema exist.
    Safe to call multiple times.
    """
    _ensure_dir(sqlite_path)
    with contextlib.closing(_connect(sqlite_path)) as conn:
        _apply_pragmas(conn)
        _ensure_schema(conn)


def known_ids(sqlite_path: str, pipeline_key: str) -> set[str]:
    """Posting ids already synced into `pipeline_key`; empty if the ledger is missing."""
    if not os.path.exists(sqlite_path):
        return set()
    with contextlib.closing(_connect(sqlite_path)) as conn:
        _apply_pragmas(conn)
        _ensure_schema(conn)
        rows = conn.execute(
            "SELECT posting_id FROM synced WHERE pipeline_key = ?",
            (pipeline_key,),
        ).fetchall()
    return {r[0] for r in rows}


def record_created(sqlite_path: str, pipeline_key: str, posting: JobPosting, box_key: str) -> bool:
    """
    Remember that `posting` now lives in the CRM as `box_key`.

    Dedupe key: (pipeline_key, posting_id)

    Returns:
        True if the row was inserted, False if the posting was already recorded.
    """
    init_db(sqlite_path)
    try:
        with contextlib.closing(_connect(sqlite_path)) as conn:
            _apply_pragmas(conn)
            cur = conn.cursor()
            cur.execute("BEGIN IMMEDIATE")
            cur.execute(
                """
                INSERT OR IGNORE INTO synced (pipeline_key, posting_id, box_key, source, url, created_utc)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (pipeline_key, posting.id, box_key, posting.source.value, posting.url, now_iso()),
            )
            inserted = cur.rowcount == 1
            conn.commit()
    except sqlite3.Error as e:
        log_error({
            "component": "job_scout.db",
            "op": "record_created",
            "sqlite_path": sqlite_path,
            "posting_id": posting.id,
            "error": repr(e),
        })
        raise
    return inserted


# ---- Helpers for tests & diagnostics ----------------------------------------


def count_rows(sqlite_path: str) -> int:
    """Return total rows in the ledger; 0 if DB missing/empty."""
    if not os.path.exists(sqlite_path):
        return 0
    with contextlib.closing(_connect(sqlite_path)) as conn:
        _apply_pragmas(conn)
        _ensure_schema(conn)
        (n,) = conn.execute("SELECT COUNT(*) FROM synced").fetchone()
    return int(n or 0)


def reset_db(sqlite_path: str) -> None:
    """
    Remove the DB file entirely (for pytest fixtures).
    Safe if it doesn't exist.
    """
    with contextlib.suppress(FileNotFoundError):
        os.remove(sqlite_path)


# ---- Internal utilities -----------------------------------------------------


def _ensure_dir(sqlite_path: str) -> None:
    d = os.path.dirname(os.path.abspath(sqlite_path)) or "."
    os.makedirs(d, exist_ok=True)


def _connect(sqlite_path: str) -> sqlite3.Connection:
    # Autocommit mode; transactions are opened explicitly.
    return sqlite3.connect(sqlite_path, timeout=30.0, isolation_level=None)


def _apply_pragmas(conn: sqlite3.Connection) -> None:
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    conn.execute("PRAGMA temp_store=MEMORY;")


def _ensure_schema(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS synced (
          id INTEGER PRIMARY KEY,
          pipeline_key TEXT NOT NULL,
          posting_id   TEXT NOT NULL,
          box_key      TEXT NOT NULL,
          source       TEXT NOT NULL,
          url          TEXT NOT NULL,
          created_utc  TEXT NOT NULL
        );
        """
    )
    conn.execute(
        """
        CREATE UNIQUE INDEX IF NOT EXISTS ux_synced_posting
          ON synced (pipeline_key, posting_id);
        """
    )
