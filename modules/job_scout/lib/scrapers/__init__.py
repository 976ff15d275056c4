# job_scout/scrapers/__init__.py
from __future__ import annotations

from . import boards  # noqa: F401  (registers the board scrapers)
from .assisted import AssistedBoardScraper, ScrapeState
from .base import BaseScraper, ScraperError
from .registry import all_sources, get, register

__all__ = [
    "AssistedBoardScraper",
    "BaseScraper",
    "ScrapeState",
    "ScraperError",
    "all_sources",
    "get",
    "register",
]
