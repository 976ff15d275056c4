from __future__ import annotations

import hashlib
import random
import secrets
from datetime import datetime, timezone
from typing import Any

STABLE_ID_LENGTH = 32

_ALIAS_ADJECTIVES = ("brisk", "calm", "eager", "keen", "lively", "swift")
_ALIAS_NOUNS = ("falcon", "otter", "lynx", "sparrow", "orca", "puma")


def stable_id(value: str) -> str:
    """
    Content-addressed identifier: SHA-256 of `value`, hex, truncated to 32 chars.
    Postings use stable_id(f"{source}:{canonical_url}").
    """
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:STABLE_ID_LENGTH]


def generate_run_id() -> str:
    """Random 16-hex-char correlation id for one invocation."""
    return secrets.token_hex(8)


def generate_session_alias() -> str:
    """Human-friendly label for logs, e.g. 'keen-otter-512'."""
    adj = random.choice(_ALIAS_ADJECTIVES)
    noun = random.choice(_ALIAS_NOUNS)
    return f"{adj}-{noun}-{random.randint(0, 999)}"


def truthy(v: Any) -> bool:
    """
    Normalize common truthy inputs from env/kwargs.
    Accepts bools or strings like: '1', 'true', 'yes', 'on'.
    """
    if isinstance(v, bool):
        return v
    if v is None:
        return False
    if isinstance(v, (int, float)):
        return v != 0
    s = str(v).strip().lower()
    return s in {"1", "true", "yes", "on", "y", "t"}


def parse_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [part.strip() for part in str(value).split(",") if part.strip()]


def parse_number(value: Any) -> float | None:
    """Lenient number parse: None/''/garbage -> None; '120,000' -> 120000.0."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    s = str(value).strip().replace(",", "").replace("_", "")
    if not s:
        return None
    try:
        n = float(s)
    except ValueError:
        return None
    if n != n or n in (float("inf"), float("-inf")):
        return None
    return n


def mask_key(value: str | None, visible: int = 4) -> str:
    """'sk-abcdef1234' -> '********1234'. Short values are fully masked."""
    v = value or ""
    if len(v) <= visible:
        return "*" * len(v)
    return "*" * (len(v) - visible) + v[-visible:]


def now_iso() -> str:
    """
    UTC ISO-8601 timestamp with 'Z' suffix.
    """
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
