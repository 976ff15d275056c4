# modules/job_scout/lib/__init__.py
from __future__ import annotations

# Re-export commonly-used types for convenience
from .config import ConfigError, Settings
from .engine import RunReport, run_once
from .models import FallbackOutcome, JobPosting, JobSource, RealOutcome, ScrapeOutcome, SearchCriteria

__all__ = [
    "ConfigError",
    "FallbackOutcome",
    "JobPosting",
    "JobSource",
    "RealOutcome",
    "RunReport",
    "ScrapeOutcome",
    "SearchCriteria",
    "Settings",
    "run_once",
]
