from __future__ import annotations

import time
from abc import ABC, abstractmethod
from collections.abc import Callable

from ..automation.base import AutomationSession, BrowserAutomation
from ..models import JobSource, ScrapeOutcome, SearchCriteria


class ScraperError(Exception):
    """Raised only when both the real and the synthetic fallback paths fail."""


class BaseScraper(ABC):
    """
    Abstract board scraper.

    One instance drives ONE board through the shared automation session; the
    orchestrator owns the session and runs scrapers one after another.

    Contract:
      - scrape(criteria) returns a ScrapeOutcome: RealOutcome for genuine data,
        FallbackOutcome for the board's synthetic stand-ins.
      - Postings are normalized but NOT filtered; criteria filtering happens upstream.
      - Do NOT open/close the session, talk to the CRM, or print.
    """

    # Concrete subclasses MUST set this to a scrapeable JobSource.
    source: JobSource = JobSource.UNKNOWN

    def __init__(
        self,
        automation: BrowserAutomation,
        session: AutomationSession,
        *,
        max_details: int = 5,
        new_tab_wait_seconds: float = 3.0,
        item_pause_seconds: float = 1.0,
        screenshot_dir: str | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.automation = automation
        self.session = session
        self.max_details = max_details
        self.new_tab_wait_seconds = new_tab_wait_seconds
        self.item_pause_seconds = item_pause_seconds
        self.screenshot_dir = screenshot_dir
        self._sleep = sleep

    @abstractmethod
    def scrape(self, criteria: SearchCriteria) -> ScrapeOutcome:
        """
        Collect postings from the board.

        Args:
            criteria: the run's search criteria (context for logs; not applied here)

        Returns:
            RealOutcome or FallbackOutcome.
        """
        raise NotImplementedError
