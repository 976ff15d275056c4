# service/cli.py
"""
User-facing command-line entrypoints for job_scout.

Subcommands
-----------
search [--keywords CSV] [--remote-only] [--location L] [--salary-min N]
       [--sources CSV] [--dry-run] [--offline] [--json]
    - Full pipeline: scrape boards, filter, create CRM boxes (or record them on --dry-run)

scrape SOURCE [criteria flags] [--offline] [--json]
    - Run one board scraper and print its postings; never touches the CRM

pipelines
    - List the CRM pipelines visible to STREAK_API_KEY

boxes [--pipeline KEY]
    - List boxes in a pipeline (defaults to STREAK_PIPELINE_KEY)

check
    - Verify CRM connectivity and pipeline access; print the masked configuration

create-test-box [--dry-run]
    - Create one synthetic box to check field mapping end to end

Exit codes: 0 ok/empty, 1 failure, 2 configuration error, 3 partial success,
130 interrupted.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import time
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from dotenv import load_dotenv

from modules.job_scout.lib.automation.base import SessionError
from modules.job_scout.lib.config import ConfigError, Settings
from modules.job_scout.lib.crm.client import CrmApiError, CrmError, StreakClient
from modules.job_scout.lib.crm.mappers import build_request
from modules.job_scout.lib.engine import STATUS_FAILED, STATUS_PARTIAL, RunReport, scrape_only
from modules.job_scout.lib.models import JobSource
from modules.job_scout.lib.normalize import RawPosting, normalize_posting
from modules.job_scout.main import run as run_job_scout
from service import logging_utils as L

LOG = logging.getLogger("service.cli")

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG = 2
EXIT_PARTIAL = 3
EXIT_INTERRUPTED = 130


# ----------------------------- Logging setup ---------------------------------
def _ensure_logging() -> None:
    """Initialize a reasonable logging setup if none exists yet."""
    root = logging.getLogger()
    if not root.handlers:
        level = os.getenv("LOG_LEVEL", "INFO").upper()
        logging.basicConfig(
            level=getattr(logging, level, logging.INFO),
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )


# -------------------------- Utility / glue code ------------------------------
def _now_iso() -> str:
    return datetime.now().astimezone().isoformat()


def _print_table(rows: Iterable[tuple[str, str]], headers: tuple[str, str] = ("ID", "DETAILS")) -> None:
    """Very simple two-column table printer."""
    rows = list(rows)
    w0 = max(len(headers[0]), *(len(r[0]) for r in rows)) if rows else len(headers[0])
    w1 = max(len(headers[1]), *(len(r[1]) for r in rows)) if rows else len(headers[1])
    sep = f"+-{'-' * w0}-+-{'-' * w1}-+"
    print(sep)
    print(f"| {headers[0].ljust(w0)} | {headers[1].ljust(w1)} |")
    print(sep)
    for c0, c1 in rows:
        print(f"| {c0.ljust(w0)} | {c1.ljust(w1)} |")
    print(sep)


def _criteria_kwargs(args: argparse.Namespace) -> dict[str, Any]:
    """Only pass what the user actually set so env defaults still apply."""
    kw: dict[str, Any] = {}
    if getattr(args, "keywords", None):
        kw["keywords"] = args.keywords
    if getattr(args, "remote_only", False):
        kw["remote_only"] = True
    if getattr(args, "location", None):
        kw["location"] = args.location
    if getattr(args, "salary_min", None) is not None:
        kw["salary_min"] = args.salary_min
    if getattr(args, "offline", False):
        kw["offline"] = True
    return kw


def _status_exit_code(status: str) -> int:
    if status == STATUS_FAILED:
        return EXIT_FAILURE
    if status == STATUS_PARTIAL:
        return EXIT_PARTIAL
    return EXIT_OK


def _print_report(report: RunReport) -> None:
    for outcome in report.outcomes:
        tag = f"FALLBACK ({getattr(outcome, 'reason', '')})" if outcome.is_fallback else "live"
        print(f"{outcome.source.value}: {len(outcome.postings)} postings [{tag}]")
    for source, err in report.source_errors.items():
        print(f"{source}: ERROR {err}")

    print(f"Matches: {len(report.matches)} of {len(report.postings)} postings")
    if report.matches:
        _print_table(
            ((p.company, f"{p.title} | {p.location} | {p.url}") for p in report.matches),
            headers=("COMPANY", "POSTING"),
        )
    if report.dry_run_requests:
        print(f"DRY RUN: {len(report.dry_run_requests)} box(es) would be created:")
        for req in report.dry_run_requests:
            print(json.dumps(req.payload(), ensure_ascii=False, sort_keys=True))
    if report.created:
        print(f"Created {len(report.created)} box(es): " + ", ".join(b.key for b in report.created))
    for skip in report.skipped:
        print(f"SKIPPED: {skip.name} ({skip.reason})")
    for failure in report.failures:
        print(f"FAILED: {failure.name}: {failure.error}", file=sys.stderr)
    print(f"Status: {report.status.upper()}")


def _fail(where: str, e: BaseException, started: float, code: int = EXIT_FAILURE, **extra: Any) -> int:
    print(f"FAILURE: {e}", file=sys.stderr)
    L.write_error_log({
        "ts": _now_iso(),
        "where": where,
        "error": repr(e),
        "duration_ms": int((time.monotonic() - started) * 1000),
        **extra,
    })
    return code


# ------------------------------ Subcommands ----------------------------------
def cmd_search(args: argparse.Namespace) -> int:
    started = time.monotonic()
    kwargs = _criteria_kwargs(args)
    if args.sources:
        kwargs["sources"] = args.sources
    if args.dry_run:
        kwargs["dry_run"] = True

    try:
        report = run_job_scout(**kwargs)
    except KeyboardInterrupt:
        return EXIT_INTERRUPTED
    except ConfigError as e:
        return _fail("cli.search", e, started, EXIT_CONFIG, kwargs=kwargs)
    except SessionError as e:
        return _fail("cli.search", e, started, kwargs=kwargs)
    except Exception as e:
        LOG.exception("job_scout search failed: %s", e)
        return _fail("cli.search", e, started, kwargs=kwargs)

    L.write_activity_log({
        "ts": _now_iso(),
        "event": "cli_search",
        "run_id": report.run_id,
        "status": report.status,
        "kwargs": kwargs,
        "duration_ms": int((time.monotonic() - started) * 1000),
    })
    if args.json:
        print(json.dumps(report.to_dict(), ensure_ascii=False, indent=2, default=str))
    else:
        _print_report(report)
    return _status_exit_code(report.status)


def cmd_scrape(args: argparse.Namespace) -> int:
    started = time.monotonic()
    kwargs = _criteria_kwargs(args)
    kwargs["sources"] = [args.source]
    try:
        settings = Settings.from_env_and_kwargs(kwargs)
        report = scrape_only(settings)
    except KeyboardInterrupt:
        return EXIT_INTERRUPTED
    except ConfigError as e:
        return _fail("cli.scrape", e, started, EXIT_CONFIG, source=args.source)
    except SessionError as e:
        return _fail("cli.scrape", e, started, source=args.source)
    except Exception as e:
        LOG.exception("job_scout scrape failed: %s", e)
        return _fail("cli.scrape", e, started, source=args.source)

    if args.json:
        print(json.dumps(report.to_dict() | {"postings": [p.to_dict() for p in report.postings]}, indent=2))
        return _status_exit_code(report.status)

    for outcome in report.outcomes:
        kind = "FALLBACK" if outcome.is_fallback else "LIVE"
        print(f"{outcome.source.value} [{kind}] session={outcome.session_id}")
        for note in outcome.notes:
            print(f"  note: {note}")
    match_ids = {p.id for p in report.matches}
    _print_table(
        (
            (("* " if p.id in match_ids else "  ") + p.company, f"{p.title} | {p.location} | {p.url}")
            for p in report.postings
        ),
        headers=("COMPANY (* = matches criteria)", "POSTING"),
    )
    return _status_exit_code(report.status)


def cmd_pipelines(args: argparse.Namespace) -> int:
    started = time.monotonic()
    try:
        settings = Settings.from_env_and_kwargs({})
        client = StreakClient(settings.streak_api_key)
        try:
            pipelines = client.list_pipelines()
        finally:
            client.close()
    except KeyboardInterrupt:
        return EXIT_INTERRUPTED
    except ConfigError as e:
        return _fail("cli.pipelines", e, started, EXIT_CONFIG)
    except CrmError as e:
        return _fail("cli.pipelines", e, started)

    if not pipelines:
        print("No pipelines found.")
        return EXIT_OK
    _print_table(
        ((p.key, f"{p.name} ({len(p.stages)} stages, {len(p.fields)} fields)") for p in pipelines),
        headers=("PIPELINE", "DETAILS"),
    )
    return EXIT_OK


def cmd_boxes(args: argparse.Namespace) -> int:
    started = time.monotonic()
    try:
        settings = Settings.from_env_and_kwargs({})
        pipeline_key = args.pipeline or settings.streak_pipeline_key
        client = StreakClient(settings.streak_api_key)
        try:
            boxes = client.list_boxes(pipeline_key)
        finally:
            client.close()
    except KeyboardInterrupt:
        return EXIT_INTERRUPTED
    except ConfigError as e:
        return _fail("cli.boxes", e, started, EXIT_CONFIG)
    except CrmError as e:
        return _fail("cli.boxes", e, started, pipeline=args.pipeline)

    if not boxes:
        print("No boxes in pipeline.")
        return EXIT_OK
    _print_table(((b.key, f"{b.name} [{b.stage_key or '-'}]") for b in boxes), headers=("BOX", "NAME [STAGE]"))
    return EXIT_OK


def cmd_check(args: argparse.Namespace) -> int:
    started = time.monotonic()
    try:
        settings = Settings.from_env_and_kwargs({})
    except ConfigError as e:
        return _fail("cli.check", e, started, EXIT_CONFIG)

    print(json.dumps(settings.summary(), indent=2, default=str))
    client = StreakClient(settings.streak_api_key)
    try:
        pipeline = client.get_pipeline(settings.streak_pipeline_key)
    except KeyboardInterrupt:
        return EXIT_INTERRUPTED
    except CrmApiError as e:
        hint = " (check STREAK_API_KEY)" if e.status_code in (401, 403) else ""
        return _fail("cli.check", CrmError(f"{e}{hint}"), started)
    except CrmError as e:
        return _fail("cli.check", e, started)
    finally:
        client.close()

    print(f"OK: pipeline {pipeline.name!r} reachable ({len(pipeline.stages)} stages).")
    missing = [name for name, key in settings.field_keys.to_dict().items() if key and key not in pipeline.fields]
    if missing:
        print("WARNING: field keys not found in pipeline: " + ", ".join(missing))
    if settings.stage_key and settings.stage_key not in pipeline.stages:
        print(f"WARNING: STREAK_DEFAULT_STAGE_KEY {settings.stage_key!r} not found in pipeline.")
    return EXIT_OK


def cmd_create_test_box(args: argparse.Namespace) -> int:
    started = time.monotonic()
    try:
        settings = Settings.from_env_and_kwargs({"dry_run": args.dry_run})
    except ConfigError as e:
        return _fail("cli.create_test_box", e, started, EXIT_CONFIG)

    posting = normalize_posting(
        RawPosting(
            title="Developer Relations Engineer (test)",
            company="Job Scout Test Co",
            url=f"https://example.com/job-scout-test/{int(time.time())}",
            location="Remote",
            description="Synthetic box created by `job-scout create-test-box`.",
        ),
        JobSource.UNKNOWN,
    )
    if posting is None:
        return _fail("cli.create_test_box", RuntimeError("synthetic posting failed to normalize"), started)
    request = build_request(
        posting,
        settings.streak_pipeline_key,
        settings.field_keys,
        settings.stage_key,
        settings.vocabulary,
    )
    if settings.dry_run:
        print("DRY RUN: would create:")
        print(json.dumps(request.payload(), ensure_ascii=False, indent=2, sort_keys=True))
        return EXIT_OK

    client = StreakClient(settings.streak_api_key)
    try:
        box = client.create_box(request)
    except KeyboardInterrupt:
        return EXIT_INTERRUPTED
    except CrmError as e:
        return _fail("cli.create_test_box", e, started)
    finally:
        client.close()

    L.write_activity_log({"ts": _now_iso(), "event": "cli_create_test_box", "box_key": box.key})
    print(f"SUCCESS: created box {box.key} ({box.name}).")
    return EXIT_OK


# ------------------------------- Argparse ------------------------------------
def _add_criteria_flags(sp: argparse.ArgumentParser) -> None:
    sp.add_argument("--keywords", help="Comma-separated keywords (any match).")
    sp.add_argument("--remote-only", action="store_true", help="Keep only postings located 'Remote'.")
    sp.add_argument("--location", help="Location substring, e.g. 'San Francisco' or 'remote'.")
    sp.add_argument("--salary-min", type=float, help="Minimum salary in USD.")
    sp.add_argument("--offline", action="store_true", help="No browser; boards return their fallback sets.")
    sp.add_argument("--json", action="store_true", help="Print the run report as JSON.")


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="job-scout",
        description="Scrape job boards for developer-relations roles and sync matches into Streak.",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    # search
    sp = sub.add_parser("search", help="Run the full scrape -> filter -> CRM pipeline.")
    _add_criteria_flags(sp)
    sp.add_argument("--sources", help="Comma-separated boards (default: all).")
    sp.add_argument("--dry-run", action="store_true", help="Build CRM requests but do not send them.")
    sp.set_defaults(func=cmd_search)

    # scrape
    sp = sub.add_parser("scrape", help="Run one board scraper; no CRM calls.")
    sp.add_argument("source", choices=[s.value for s in JobSource.scrapeable()])
    _add_criteria_flags(sp)
    sp.set_defaults(func=cmd_scrape)

    # pipelines
    sp = sub.add_parser("pipelines", help="List CRM pipelines.")
    sp.set_defaults(func=cmd_pipelines)

    # boxes
    sp = sub.add_parser("boxes", help="List boxes in a pipeline.")
    sp.add_argument("--pipeline", help="Pipeline key (default: STREAK_PIPELINE_KEY).")
    sp.set_defaults(func=cmd_boxes)

    # check
    sp = sub.add_parser("check", help="Verify CRM connectivity and print masked config.")
    sp.set_defaults(func=cmd_check)

    # create-test-box
    sp = sub.add_parser("create-test-box", help="Create one synthetic box.")
    sp.add_argument("--dry-run", action="store_true", help="Print the payload instead of sending it.")
    sp.set_defaults(func=cmd_create_test_box)

    return p


# --------------------------------- Main --------------------------------------
def main(argv: Iterable[str] | None = None) -> int:
    load_dotenv()
    _ensure_logging()
    parser = _build_parser()
    args = parser.parse_args(args=list(argv) if argv is not None else None)
    return args.func(args)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
