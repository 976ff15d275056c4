from __future__ import annotations

import logging
from typing import Any

from service import logging_utils as _backend

# Top-level keys that never reach a log sink
_REDACT_KEYS = {
    "password",
    "token",
    "apikey",
    "api_key",
    "secret",
    "authorization",
    "auth",
    "bearer",
    "browserbase_api_key",
    "streak_api_key",
    "openai_api_key",
}


def _redact_record(record: dict[str, Any]) -> dict[str, Any]:
    """
    Shallow-copy record and redact obvious secret-like fields at top level.
    The JSONL backend redacts nested keys as well.
    """
    redacted = dict(record)
    for k in list(redacted.keys()):
        lk = str(k).lower()
        if lk in _REDACT_KEYS or lk.endswith("_secret"):
            redacted[k] = "***REDACTED***"
    return redacted


def activity(record: dict[str, Any]) -> None:
    """
    Write an activity record to the JSONL activity log.
    Falls back to stdlib logging if the file write fails.
    """
    payload = _redact_record(record)
    logging.getLogger("job_scout.activity").debug("%s", payload)
    try:
        _backend.write_activity_log(payload)
    except (OSError, TypeError, ValueError):
        logging.getLogger("job_scout.activity").info(payload)


def error(record: dict[str, Any]) -> None:
    """
    Write an error record to the JSONL error log.
    Falls back to stdlib logging if the file write fails.
    """
    payload = _redact_record(record)
    logging.getLogger("job_scout.error").warning("%s", payload)
    try:
        _backend.write_error_log(payload)
    except (OSError, TypeError, ValueError):
        logging.getLogger("job_scout.error").error(payload)
