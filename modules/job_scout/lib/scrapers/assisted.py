# job_scout/scrapers/assisted.py
"""
AI-assisted job-board scraper.

Boards that render their listings client-side are driven through the
BrowserAutomation capability with natural-language act/extract steps:

  INIT -> NAVIGATED -> SEARCHED -> TITLES_EXTRACTED -> DETAIL(i) -> DONE
                                                     \\-> FALLBACK

A concrete board only declares its profile (root URL, search query, role
keywords, recency instruction, synthetic fallback set); the flow lives here.
"""

from __future__ import annotations

import logging
import os
from enum import Enum
from typing import Any
from urllib.parse import quote, urlsplit

from pydantic import BaseModel, Field

from .. import logging_bridge
from ..automation.base import ActResult, SessionError
from ..models import FallbackOutcome, JobPosting, RealOutcome, ScrapeOutcome, SearchCriteria
from ..normalize import RawPosting, normalize_posting
from ..utils import now_iso
from .base import BaseScraper, ScraperError

log = logging.getLogger(__name__)


class ScrapeState(str, Enum):
    INIT = "init"
    NAVIGATED = "navigated"
    SEARCHED = "searched"
    TITLES_EXTRACTED = "titles_extracted"
    DETAIL = "detail"
    DONE = "done"
    FALLBACK = "fallback"


# ---- extraction schemas ------------------------------------------------------


class TitleCard(BaseModel):
    title: str = Field(description="The job title exactly as shown on the listing card")
    matches_target_role: bool = Field(
        default=False,
        description="True if the title contains one of the target role keywords",
    )


class TitleList(BaseModel):
    job_titles: list[TitleCard] = Field(default_factory=list)


class ExpandedJob(BaseModel):
    title: str = ""
    company: str = ""
    apply_button_text: str = "Apply"


class ExpandedView(BaseModel):
    job: ExpandedJob


class CurrentUrl(BaseModel):
    current_url: str = ""


class _HardStepFailure(Exception):
    """A step in the NAVIGATED..TITLES_EXTRACTED range could not complete."""


# ---- scraper -----------------------------------------------------------------


class AssistedBoardScraper(BaseScraper):
    root_url: str = ""
    search_query: str = "Developer Relations"
    role_keywords: tuple[str, ...] = ("Developer Relations", "DevRel", "Developer Advocate")
    # Optional act to narrow results by posting date; failures are ignored.
    recency_instruction: str | None = None
    fallback_items: tuple[RawPosting, ...] = ()

    def scrape(self, criteria: SearchCriteria) -> ScrapeOutcome:
        self._state = ScrapeState.INIT
        self._notes: list[str] = []
        self._log_state(criteria=criteria.to_dict())
        try:
            postings = self._scrape_live()
        except (SessionError, _HardStepFailure) as e:
            return self._fallback(str(e))
        except Exception as e:  # anything unexpected still degrades to synthetic data
            log.exception("Unexpected error while scraping %s", self.source.value)
            return self._fallback(f"unexpected error: {e!r}")

        self._set_state(ScrapeState.DONE, postings=len(postings))
        return RealOutcome(
            source=self.source,
            postings=tuple(postings),
            session_id=self.session.session_id,
            run_id=self.session.run_id,
            notes=tuple(self._notes),
        )

    # ---- live path ----
    def _scrape_live(self) -> list[JobPosting]:
        self.automation.navigate(self.session, self.root_url)
        self.automation.wait_for_settle(self.session)
        self._set_state(ScrapeState.NAVIGATED, url=self.root_url)

        if not self._search():
            raise _HardStepFailure(f"search for {self.search_query!r} failed twice")
        self._set_state(ScrapeState.SEARCHED, query=self.search_query)

        keywords = ", ".join(f'"{k}"' for k in self.role_keywords)
        listing = self.automation.extract(
            self.session,
            TitleList,
            f"List every job title visible in the search results. For each one, set "
            f"matches_target_role to true if the title contains any of: {keywords}.",
        )
        if not listing.success or listing.data is None:
            raise _HardStepFailure(f"title extraction failed: {listing.error or 'no data'}")

        targets = [c for c in listing.data.job_titles if c.matches_target_role and c.title.strip()]
        self._set_state(
            ScrapeState.TITLES_EXTRACTED,
            titles=len(listing.data.job_titles),
            matching=len(targets),
        )
        if not targets:
            return []

        extracted_at = now_iso()
        postings: list[JobPosting] = []
        self._off_board = False
        for index, card in enumerate(targets[: self.max_details]):
            if self._off_board and not self._return_to_board():
                remaining = len(targets[index : self.max_details])
                self._note("return_to_board", f"board unreachable; {remaining} item(s) not collected")
                break
            self._set_state(ScrapeState.DETAIL, index=index, title=card.title)
            raw = self._collect_detail(card.title)
            if raw is not None:
                posting = normalize_posting(raw, self.source, extracted_at)
                if posting is not None:
                    postings.append(posting)
            if self.item_pause_seconds > 0:
                self._sleep(self.item_pause_seconds)
        return postings

    def _collect_detail(self, title: str) -> RawPosting | None:
        expand = f'Click on the job listing titled "{title}" to expand its details.'
        if not self._act_with_retry(expand, step="expand").success:
            self._note("expand", f"could not open {title!r}; skipped")
            return None
        self.automation.wait_for_settle(self.session)

        detail = self.automation.extract(
            self.session,
            ExpandedView,
            f'From the expanded job card for "{title}", extract the job title, the company '
            "name and the text of the apply button.",
        )
        if not detail.success or detail.data is None:
            self._note("detail_extract", f"{title!r}: {detail.error or 'no data'}; skipped")
            return None

        job = detail.data.job
        job_title = job.title.strip() or title
        company = job.company.strip()
        url = self._follow_apply(job_title, company, job.apply_button_text or "Apply")
        return RawPosting(title=job_title, company=company, url=url)

    def _follow_apply(self, title: str, company: str, button_text: str) -> str:
        fallback_url = self.synthetic_url(company, title)

        clicked = self.automation.act(
            self.session,
            f'Click the "{button_text}" button for the "{title}" position at {company}.',
        )
        if not clicked.success:
            self._note("apply", f"{title!r}: apply click failed; using board link")
            return fallback_url

        if self.new_tab_wait_seconds > 0:
            self._sleep(self.new_tab_wait_seconds)

        switched = self.automation.act(self.session, "Switch to the most recently opened browser tab.")
        if not switched.success:
            self._note("switch_tab", f"{title!r}: {switched.message or 'no new tab'}; using board link")
            return fallback_url

        try:
            current = self.automation.extract(
                self.session,
                CurrentUrl,
                "Return the full URL of the current page as current_url.",
            )
            url = (current.data.current_url if current.success and current.data else "").strip()
        finally:
            closed = self.automation.act(self.session, "Close the current tab and return to the job board tab.")
            if not closed.success:
                # The apply control may have navigated the board tab itself.
                self._off_board = True
                self._note("close_tab", closed.message or "act failed")

        if not self._is_outbound(url):
            self._note("apply_url", f"{title!r}: unusable url {url!r}; using board link")
            return fallback_url
        return url

    def _search(self) -> bool:
        """Submit the board search and apply the recency filter; False if the search act failed twice."""
        search = (
            f'Type "{self.search_query}" into the search input field and submit the search '
            "(press Enter or click the search button)."
        )
        if not self._act_with_retry(search, step="search").success:
            return False
        self.automation.wait_for_settle(self.session)

        if self.recency_instruction:
            result = self.automation.act(self.session, self.recency_instruction)
            if result.success:
                self.automation.wait_for_settle(self.session)
            else:
                self._note("recency_filter", result.message or "act failed")
        return True

    def _return_to_board(self) -> bool:
        try:
            self.automation.navigate(self.session, self.root_url)
        except SessionError as e:
            self._note("return_to_board", f"navigation failed: {e}")
            return False
        self.automation.wait_for_settle(self.session)
        if not self._search():
            return False
        self._off_board = False
        return True

    # ---- fallback ----
    def _fallback(self, reason: str) -> FallbackOutcome:
        self._set_state(ScrapeState.FALLBACK, reason=reason)
        self._capture_screenshot()

        extracted_at = now_iso()
        postings = [normalize_posting(raw, self.source, extracted_at) for raw in self.fallback_items]
        if not postings or any(p is None for p in postings):
            raise ScraperError(f"{self.source.value}: synthetic fallback set is invalid (after: {reason})")

        logging_bridge.error({
            "component": "job_scout.scraper",
            "op": "fallback",
            "source": self.source.value,
            "session_id": self.session.session_id,
            "run_id": self.session.run_id,
            "reason": reason,
            "count": len(postings),
        })
        return FallbackOutcome(
            source=self.source,
            postings=tuple(p for p in postings if p is not None),
            session_id=self.session.session_id,
            run_id=self.session.run_id,
            notes=tuple(self._notes),
            reason=reason,
        )

    def _capture_screenshot(self) -> None:
        if not self.screenshot_dir:
            return
        try:
            png = self.automation.screenshot(self.session)
            if not png:
                return
            os.makedirs(self.screenshot_dir, exist_ok=True)
            path = os.path.join(
                self.screenshot_dir,
                f"{self.source.value}-{self.session.run_id}-{self._state.value}.png",
            )
            with open(path, "wb") as fh:
                fh.write(png)
            self._note("screenshot", path)
        except (OSError, SessionError) as e:
            log.warning("Could not save screenshot for %s: %s", self.source.value, e)

    # ---- helpers ----
    def synthetic_url(self, company: str, title: str) -> str:
        return f"{self.root_url.rstrip('/')}/job/{quote(company, safe='')}/{quote(title, safe='')}"

    def _is_outbound(self, url: str) -> bool:
        if not url or url.lower() == "null":
            return False
        parts = urlsplit(url if urlsplit(url).scheme else f"https://{url}")
        # about:blank, chrome://newtab/ and friends are what a tab reports before it loads.
        if parts.scheme.lower() not in {"http", "https"} or not parts.netloc:
            return False
        host = parts.netloc.lower()
        board = urlsplit(self.root_url).netloc.lower()
        return host.removeprefix("www.") != board.removeprefix("www.")

    def _act_with_retry(self, instruction: str, *, step: str) -> ActResult:
        result = self.automation.act(self.session, instruction)
        if result.success:
            return result
        self._note(step, f"first attempt failed: {result.message or 'act failed'}; retrying")
        self.automation.wait_for_settle(self.session)
        return self.automation.act(self.session, instruction)

    def _set_state(self, state: ScrapeState, **context: Any) -> None:
        self._state = state
        self._log_state(**context)

    def _log_state(self, **context: Any) -> None:
        logging_bridge.activity({
            "component": "job_scout.scraper",
            "op": "state",
            "source": self.source.value,
            "state": self._state.value,
            "session_id": self.session.session_id,
            "run_id": self.session.run_id,
            **context,
        })

    def _note(self, step: str, message: str) -> None:
        self._notes.append(f"{step}: {message}")
        logging_bridge.activity({
            "component": "job_scout.scraper",
            "op": "skip",
            "source": self.source.value,
            "state": self._state.value,
            "step": step,
            "session_id": self.session.session_id,
            "run_id": self.session.run_id,
            "message": message,
        })
