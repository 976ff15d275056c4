from __future__ import annotations

from typing import Any

from .lib.config import Settings
from .lib.engine import RunReport
from .lib.engine import run_once as _run_engine
from .lib.logging_bridge import activity as log_activity


def run(**kwargs: Any) -> RunReport:
    """
    Entry point for the 'job_scout' module.

    Accepts kwargs (from the CLI), including:
      keywords: str (CSV) | list[str]
      remote_only: bool = False
      location: str
      salary_min: number
      sources: str (CSV) | list[str]
      dry_run: bool = False
      offline: bool = False
      dedup_policy: "none" | "crm_name" | "ledger"

    Test hooks (not settings): automation, crm, get_scraper, environ.

    Returns:
      RunReport for the run; its `status` drives the CLI exit code.
    """
    hooks = {k: kwargs.pop(k) for k in ("automation", "crm", "get_scraper") if k in kwargs}
    environ = kwargs.pop("environ", None)

    # Build validated settings from env + kwargs (raises ConfigError)
    settings = Settings.from_env_and_kwargs(kwargs, environ)

    log_activity({
        "component": "job_scout.main",
        "op": "start",
        **settings.summary(),
    })

    return _run_engine(settings, **hooks)
