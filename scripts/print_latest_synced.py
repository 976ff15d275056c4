#!/usr/bin/env python3

import os
import sqlite3
import sys
from datetime import datetime
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent  # ../scripts → project root
DEFAULT_LEDGER = PROJECT_ROOT / "local" / "state" / "job_scout.db"


def ledger_path() -> Path:
    """JOB_SCOUT_LEDGER_PATH wins; relative paths resolve against the project root."""
    configured = os.getenv("JOB_SCOUT_LEDGER_PATH")
    if not configured:
        return DEFAULT_LEDGER
    p = Path(configured)
    return p if p.is_absolute() else PROJECT_ROOT / p


def get_latest_entries(db_path: Path, limit: int = 15) -> list[tuple[str, str, str, str, str]]:
    """
    Fetch the latest `limit` synced rows, newest first.
    Returns list of (pipeline_key, source, box_key, url, created_utc)
    """
    try:
        conn = sqlite3.connect(f"file:{db_path}?mode=ro", uri=True)
        try:
            rows = conn.execute(
                """
                SELECT pipeline_key, source, box_key, url, created_utc
                FROM synced
                ORDER BY created_utc DESC
                LIMIT ?
                """,
                (limit,),
            ).fetchall()
        finally:
            conn.close()
        return rows
    except sqlite3.Error as e:
        print(f"Error reading {db_path}: {e}", file=sys.stderr)
        return []


def format_timestamp(iso_str: str) -> str:
    """Convert ISO timestamp to readable local format."""
    try:
        dt = datetime.fromisoformat(iso_str.replace("Z", "+00:00"))
        return dt.astimezone().strftime("%Y-%m-%d %H:%M:%S %Z")
    except ValueError:
        return iso_str


def main():
    db_path = ledger_path()
    if not db_path.exists():
        print(f"Ledger not found: {db_path}")
        sys.exit(1)

    limit = 15
    if len(sys.argv) > 1:
        try:
            limit = int(sys.argv[1])
            if limit <= 0:
                raise ValueError
        except ValueError:
            print(f"Invalid limit: {sys.argv[1]}. Using default (15).", file=sys.stderr)
            limit = 15

    print("=" * 80)
    print(f"LEDGER: {db_path}")
    print(f"Showing last {limit} synced postings.")
    print("-" * 80)

    entries = get_latest_entries(db_path, limit)
    if not entries:
        print("  No entries found or error accessing ledger.")
        return

    for i, (pipeline_key, source, box_key, url, ts) in enumerate(entries, 1):
        print(f"{i:2d}. [{format_timestamp(ts)}] {source}")
        print(f"     Box:      {box_key} (pipeline {pipeline_key})")
        print(f"     URL:      {url}")
        print()


if __name__ == "__main__":
    main()
