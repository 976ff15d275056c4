"""
Engine for one job_scout run: scrape the enabled boards through one shared
automation session, then filter and sync matches into the CRM pipeline.

Features:
  - One session per run, closed on every exit path
  - Per-source isolation (a crashing scraper only loses its own board)
  - Dedup-before-create policies: none / crm_name / ledger
  - Dry-run records the exact create payloads without sending them
  - Dependency injection for testability (`automation`, `crm`, `get_scraper`)
  - Structured logging via `logging_bridge`
"""

from __future__ import annotations

import sqlite3
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from . import db, logging_bridge
from .automation.base import AutomationSession, BrowserAutomation, SessionOptions
from .config import Settings
from .crm.client import CrmApiError, CrmError, StreakClient
from .crm.mappers import build_request
from .filtering import filter_postings
from .models import CrmBox, CrmBoxRequest, JobPosting, JobSource, ScrapeOutcome
from .normalize import dedupe_postings
from .scrapers.base import BaseScraper
from .utils import generate_run_id, generate_session_alias

STATUS_OK = "ok"
STATUS_PARTIAL = "partial"
STATUS_FAILED = "failed"
STATUS_EMPTY = "empty"

OFFLINE_REASON = "offline mode: no browser session"


@dataclass(frozen=True)
class SyncFailure:
    posting_id: str
    name: str
    error: str
    status_code: int | None = None


@dataclass(frozen=True)
class SyncSkip:
    posting_id: str
    name: str
    reason: str


@dataclass
class RunReport:
    """Everything one run produced; `status` summarizes it for the CLI."""

    run_id: str
    session_id: str | None = None
    dry_run: bool = False
    dedup_policy: str = "none"
    outcomes: list[ScrapeOutcome] = field(default_factory=list)
    source_errors: dict[str, str] = field(default_factory=dict)
    postings: list[JobPosting] = field(default_factory=list)
    matches: list[JobPosting] = field(default_factory=list)
    created: list[CrmBox] = field(default_factory=list)
    failures: list[SyncFailure] = field(default_factory=list)
    skipped: list[SyncSkip] = field(default_factory=list)
    dry_run_requests: list[CrmBoxRequest] = field(default_factory=list)
    durations_us: dict[str, int] = field(default_factory=dict)

    @property
    def status(self) -> str:
        if not self.outcomes and self.source_errors:
            return STATUS_FAILED
        if self.failures:
            succeeded = len(self.created) + len(self.dry_run_requests)
            return STATUS_PARTIAL if succeeded else STATUS_FAILED
        if self.source_errors:
            return STATUS_PARTIAL
        if not self.matches:
            return STATUS_EMPTY
        return STATUS_OK

    @property
    def fallback_sources(self) -> list[str]:
        return [o.source.value for o in self.outcomes if o.is_fallback]

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "session_id": self.session_id,
            "status": self.status,
            "dry_run": self.dry_run,
            "dedup_policy": self.dedup_policy,
            "sources": {
                o.source.value: {
                    "fallback": o.is_fallback,
                    "postings": len(o.postings),
                    "notes": list(o.notes),
                    "reason": getattr(o, "reason", None),
                }
                for o in self.outcomes
            },
            "source_errors": dict(self.source_errors),
            "postings": len(self.postings),
            "matches": [p.to_dict() for p in self.matches],
            "created": [{"key": b.key, "name": b.name} for b in self.created],
            "failures": [vars(f) for f in self.failures],
            "skipped": [vars(s) for s in self.skipped],
            "dry_run_requests": [r.payload() for r in self.dry_run_requests],
            "durations_us": dict(self.durations_us),
        }


# =============================================================================
# DEFAULT COLLABORATORS (PRODUCTION)
# =============================================================================
def _default_get_scraper(source: JobSource) -> type[BaseScraper]:
    from .scrapers.registry import get as get_scraper_class

    return get_scraper_class(source)


def _default_automation(settings: Settings) -> BrowserAutomation:
    if settings.offline:
        # Navigation fails immediately, so every board degrades to its fallback set.
        from .automation.scripted import ScriptedAutomation

        return ScriptedAutomation(fail_navigation=OFFLINE_REASON)

    from .automation.browserbase import BrowserbaseAutomation

    return BrowserbaseAutomation.from_settings(settings)


# =============================================================================
# MAIN ORCHESTRATOR
# =============================================================================
def run_once(
    settings: Settings,
    *,
    automation: BrowserAutomation | None = None,
    crm: StreakClient | None = None,
    get_scraper: Callable[[JobSource], type[BaseScraper]] | None = None,
) -> RunReport:
    """
    Run one complete scrape -> filter -> sync cycle.

    Args:
        settings: validated configuration for this run.
        automation: browser capability override (tests); defaults from settings.
        crm: CRM client override (tests); defaults to a StreakClient.
        get_scraper: scraper class lookup override (tests).

    Returns:
        RunReport. SessionError from opening the session propagates.
    """
    start_ns = time.perf_counter_ns()
    run_id = generate_run_id()
    report = RunReport(run_id=run_id, dry_run=settings.dry_run, dedup_policy=settings.dedup_policy)

    # -------------------------------------------------------------------------
    # SCRAPE, MERGE, DEDUPE, FILTER
    # -------------------------------------------------------------------------
    _scrape_all(settings, automation or _default_automation(settings), get_scraper or _default_get_scraper, report)

    # -------------------------------------------------------------------------
    # SYNC
    # -------------------------------------------------------------------------
    if report.matches:
        owns_crm = crm is None
        client = crm or StreakClient(settings.streak_api_key)
        try:
            _sync(settings, client, report)
        finally:
            if owns_crm:
                client.close()

    report.durations_us["_total_us"] = int((time.perf_counter_ns() - start_ns) // 1000)
    logging_bridge.activity({
        "component": "job_scout.engine",
        "op": "summary",
        "run_id": run_id,
        "session_id": report.session_id,
        "status": report.status,
        "dry_run": settings.dry_run,
        "dedup_policy": settings.dedup_policy,
        "found_by_source": {o.source.value: len(o.postings) for o in report.outcomes},
        "fallback_sources": report.fallback_sources,
        "source_errors": report.source_errors,
        "postings": len(report.postings),
        "matches": len(report.matches),
        "created": len(report.created),
        "failed": len(report.failures),
        "skipped": len(report.skipped),
        "durations_us": report.durations_us,
    })
    return report


def scrape_only(
    settings: Settings,
    *,
    automation: BrowserAutomation | None = None,
    get_scraper: Callable[[JobSource], type[BaseScraper]] | None = None,
) -> RunReport:
    """Scrape and filter without touching the CRM (CLI `scrape`)."""
    report = RunReport(run_id=generate_run_id(), dry_run=True, dedup_policy=settings.dedup_policy)
    _scrape_all(settings, automation or _default_automation(settings), get_scraper or _default_get_scraper, report)
    return report


def _scrape_all(
    settings: Settings,
    automation: BrowserAutomation,
    get_scraper_func: Callable[[JobSource], type[BaseScraper]],
    report: RunReport,
) -> None:
    session = automation.open_session(
        SessionOptions(
            run_id=report.run_id,
            alias=generate_session_alias(),
            project_id=settings.browserbase_project_id,
        )
    )
    report.session_id = session.session_id
    logging_bridge.activity({
        "component": "job_scout.engine",
        "op": "session_open",
        "run_id": report.run_id,
        "session_id": session.session_id,
        "alias": session.alias,
        "sources": [s.value for s in settings.sources],
    })
    try:
        for source in settings.sources:
            t0 = time.perf_counter_ns()
            outcome = _run_source(settings, automation, session, source, get_scraper_func, report)
            report.durations_us[source.value] = int((time.perf_counter_ns() - t0) // 1000)
            if outcome is not None:
                report.outcomes.append(outcome)
    finally:
        automation.close_session(session)
        logging_bridge.activity({
            "component": "job_scout.engine",
            "op": "session_closed",
            "run_id": report.run_id,
            "session_id": session.session_id,
        })

    report.postings = dedupe_postings(p for o in report.outcomes for p in o.postings)
    report.matches = filter_postings(report.postings, settings.criteria)


def _run_source(
    settings: Settings,
    automation: BrowserAutomation,
    session: AutomationSession,
    source: JobSource,
    get_scraper_func: Callable[[JobSource], type[BaseScraper]],
    report: RunReport,
) -> ScrapeOutcome | None:
    try:
        scraper_cls = get_scraper_func(source)
        scraper = scraper_cls(
            automation,
            session,
            max_details=settings.max_details,
            new_tab_wait_seconds=settings.new_tab_wait_seconds,
            item_pause_seconds=settings.item_pause_seconds,
            screenshot_dir=settings.screenshot_dir,
        )
        outcome = scraper.scrape(settings.criteria)
    except Exception as e:
        report.source_errors[source.value] = repr(e)
        logging_bridge.error({
            "component": "job_scout.engine",
            "op": "scraper_run",
            "run_id": report.run_id,
            "session_id": session.session_id,
            "source": source.value,
            "error": repr(e),
        })
        return None

    logging_bridge.activity({
        "component": "job_scout.engine",
        "op": "scraped",
        "run_id": report.run_id,
        "source": source.value,
        "fallback": outcome.is_fallback,
        "count": len(outcome.postings),
        "notes": list(outcome.notes),
    })
    return outcome


def _sync(settings: Settings, crm: StreakClient, report: RunReport) -> None:
    pipeline_key = settings.streak_pipeline_key

    known_names: set[str] = set()
    known_ids: set[str] = set()
    if settings.dedup_policy == "crm_name":
        try:
            known_names = {b.name.strip().lower() for b in crm.list_boxes(pipeline_key)}
        except CrmError as e:
            # Without the existing names we cannot honor the policy; create nothing.
            for posting in report.matches:
                _record_failure(report, posting, posting.company or posting.title, e)
            return
    elif settings.dedup_policy == "ledger":
        try:
            known_ids = db.known_ids(settings.ledger_path, pipeline_key)
        except sqlite3.Error as e:
            for posting in report.matches:
                _record_failure(report, posting, posting.company or posting.title, e)
            return

    for posting in report.matches:
        request = build_request(
            posting,
            pipeline_key,
            settings.field_keys,
            settings.stage_key,
            settings.vocabulary,
        )

        reason = None
        if settings.dedup_policy == "crm_name" and request.name.strip().lower() in known_names:
            reason = "box name already in pipeline"
        elif settings.dedup_policy == "ledger" and posting.id in known_ids:
            reason = "posting already synced"
        if reason:
            report.skipped.append(SyncSkip(posting_id=posting.id, name=request.name, reason=reason))
            logging_bridge.activity({
                "component": "job_scout.engine",
                "op": "skip_existing",
                "run_id": report.run_id,
                "posting_id": posting.id,
                "name": request.name,
                "reason": reason,
            })
            continue

        if settings.dry_run:
            report.dry_run_requests.append(request)
            logging_bridge.activity({
                "component": "job_scout.engine",
                "op": "dry_run_request",
                "run_id": report.run_id,
                "posting_id": posting.id,
                "payload": request.payload(),
            })
            known_names.add(request.name.strip().lower())
            continue

        try:
            box = crm.create_box(request)
        except CrmError as e:
            _record_failure(report, posting, request.name, e)
            continue

        report.created.append(box)
        known_names.add(request.name.strip().lower())
        logging_bridge.activity({
            "component": "job_scout.engine",
            "op": "box_created",
            "run_id": report.run_id,
            "posting_id": posting.id,
            "box_key": box.key,
            "name": box.name,
        })

        if settings.dedup_policy == "ledger":
            try:
                db.record_created(settings.ledger_path, pipeline_key, posting, box.key)
            except sqlite3.Error:
                # The box exists; db.record_created already logged the ledger error.
                continue


def _record_failure(report: RunReport, posting: JobPosting, name: str, e: CrmError | sqlite3.Error) -> None:
    status_code = e.status_code if isinstance(e, CrmApiError) else None
    report.failures.append(SyncFailure(posting_id=posting.id, name=name, error=str(e), status_code=status_code))
    logging_bridge.error({
        "component": "job_scout.engine",
        "op": "create_box",
        "run_id": report.run_id,
        "posting_id": posting.id,
        "name": name,
        "status_code": status_code,
        "error": str(e),
    })
