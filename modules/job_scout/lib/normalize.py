from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from urllib.parse import urlsplit, urlunsplit

from . import logging_bridge
from .models import JobPosting, JobSource, UNKNOWN_LOCATION
from .utils import now_iso, parse_number, stable_id

_COMPANY_PREFIX_RE = re.compile(r"^@\s*")
_WS_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class RawPosting:
    """Loosely-typed posting as collected from a board, before normalization."""

    title: str | None
    company: str | None
    url: str | None
    location: str | None = None
    description: str | None = None
    tags: Iterable[str] = ()
    salary_min: float | str | None = None
    salary_max: float | str | None = None


def canonical_url(url: str | None) -> str:
    """
    Trim, default the scheme to https, lowercase scheme/host and drop the
    fragment. Path and query are kept verbatim.
    """
    s = (url or "").strip()
    if not s:
        return ""
    if "://" not in s:
        s = "https://" + s.lstrip("/")
    parts = urlsplit(s)
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), parts.path, parts.query, ""))


def clean_company(company: str | None) -> str:
    """'@ Gladia' -> 'Gladia'."""
    return _COMPANY_PREFIX_RE.sub("", _clean_text(company))


def _clean_text(value: str | None) -> str:
    return _WS_RE.sub(" ", str(value or "")).strip()


def _clean_tags(tags: Iterable[str]) -> tuple[str, ...]:
    out: list[str] = []
    seen: set[str] = set()
    for tag in tags or ():
        t = _clean_text(tag)
        if t and t.lower() not in seen:
            seen.add(t.lower())
            out.append(t)
    return tuple(out)


def normalize_posting(
    raw: RawPosting,
    source: JobSource,
    extracted_at: str | None = None,
) -> JobPosting | None:
    """
    Build the canonical JobPosting for one raw record.

    Returns None (and logs) when title, company or url is empty after cleanup;
    unknown location becomes the 'Unknown' sentinel, reversed salary bounds are
    swapped.
    """
    title = _clean_text(raw.title)
    company = clean_company(raw.company)
    url = canonical_url(raw.url)
    if not title or not company or not url:
        logging_bridge.activity({
            "component": "job_scout.normalize",
            "op": "dropped",
            "source": source.value,
            "title": title,
            "company": company,
            "url": url,
            "reason": "missing title/company/url",
        })
        return None

    lo = parse_number(raw.salary_min)
    hi = parse_number(raw.salary_max)
    if lo is not None and hi is not None and lo > hi:
        lo, hi = hi, lo

    description = _clean_text(raw.description) or None

    return JobPosting(
        id=stable_id(f"{source.value}:{url}"),
        title=title,
        company=company,
        url=url,
        source=source,
        created_at=extracted_at or now_iso(),
        location=_clean_text(raw.location) or UNKNOWN_LOCATION,
        tags=_clean_tags(raw.tags),
        description=description,
        salary_usd_min=lo,
        salary_usd_max=hi,
    )


def dedupe_postings(postings: Iterable[JobPosting]) -> list[JobPosting]:
    """Drop later postings whose id was already seen; order preserved."""
    seen: set[str] = set()
    out: list[JobPosting] = []
    for p in postings:
        if p.id in seen:
            continue
        seen.add(p.id)
        out.append(p)
    return out
