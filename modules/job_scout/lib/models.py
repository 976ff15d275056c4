from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

REMOTE_LOCATION = "Remote"
UNKNOWN_LOCATION = "Unknown"


class JobSource(str, Enum):
    """Closed set of boards we know how to scrape (plus 'unknown')."""

    HIRING_CAFE = "hiringcafe"
    WORK_AT_A_STARTUP = "workatastartup"
    YC_JOBS = "ycjobs"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: str | JobSource | None) -> JobSource:
        if isinstance(value, JobSource):
            return value
        key = (value or "").strip().lower()
        for member in cls:
            if member.value == key:
                return member
        return cls.UNKNOWN

    @classmethod
    def scrapeable(cls) -> tuple[JobSource, ...]:
        return tuple(m for m in cls if m is not cls.UNKNOWN)


@dataclass(frozen=True)
class SearchCriteria:
    """
    User criteria applied after scraping.
    - keywords: OR-matched, case-insensitive substrings of title/description/tags
    - remote_only: location must be the 'Remote' sentinel
    - location: case-insensitive substring of posting.location ('remote' always passes)
    - minimum_salary_usd: only checked when a posting carries a salary floor
    """

    keywords: tuple[str, ...] = ()
    remote_only: bool = False
    location: str | None = None
    minimum_salary_usd: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "keywords": list(self.keywords),
            "remote_only": self.remote_only,
            "location": self.location,
            "minimum_salary_usd": self.minimum_salary_usd,
        }


@dataclass(frozen=True)
class JobPosting:
    """
    Canonical, source-agnostic posting. Built once per extraction (see normalize.py)
    and never mutated; a re-scrape yields a new object with the same id.
    """

    id: str
    title: str
    company: str
    url: str
    source: JobSource
    created_at: str
    location: str = UNKNOWN_LOCATION
    tags: tuple[str, ...] = ()
    description: str | None = None
    salary_usd_min: float | None = None
    salary_usd_max: float | None = None

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("JobPosting.id cannot be empty")
        if not self.url:
            raise ValueError("JobPosting.url cannot be empty")
        if not self.title or not self.company:
            raise ValueError("JobPosting.title and JobPosting.company are required")
        lo, hi = self.salary_usd_min, self.salary_usd_max
        if lo is not None and hi is not None and lo > hi:
            raise ValueError(f"salary_usd_min {lo} > salary_usd_max {hi}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "company": self.company,
            "location": self.location,
            "tags": list(self.tags),
            "url": self.url,
            "source": self.source.value,
            "description": self.description,
            "created_at": self.created_at,
            "salary_usd_min": self.salary_usd_min,
            "salary_usd_max": self.salary_usd_max,
        }


# -----------------------------
# Scrape outcomes
# -----------------------------
@dataclass(frozen=True)
class ScrapeOutcome:
    """
    Result bundle produced by one board scraper.
    - postings: normalized postings (NOT filtered by criteria)
    - notes: soft failures the scraper absorbed (skipped items, fallback urls)
    """

    source: JobSource
    postings: tuple[JobPosting, ...] = ()
    session_id: str | None = None
    run_id: str | None = None
    notes: tuple[str, ...] = ()

    @property
    def is_fallback(self) -> bool:
        return False


@dataclass(frozen=True)
class RealOutcome(ScrapeOutcome):
    """Postings genuinely extracted from the board."""


@dataclass(frozen=True)
class FallbackOutcome(ScrapeOutcome):
    """Synthetic stand-in postings; `reason` says why the real attempt was abandoned."""

    reason: str = ""

    @property
    def is_fallback(self) -> bool:
        return True


# -----------------------------
# CRM
# -----------------------------
@dataclass(frozen=True)
class CrmFieldKeyMap:
    """
    Domain concept -> provider field key. Keys left as None are never sent.
    """

    job_title: str | None = None
    source: str | None = None
    location: str | None = None
    website: str | None = None

    def to_dict(self) -> dict[str, str | None]:
        return {
            "job_title": self.job_title,
            "source": self.source,
            "location": self.location,
            "website": self.website,
        }


@dataclass(frozen=True)
class CrmBoxRequest:
    """Write-intent for one box. `payload()` is the exact JSON body sent on create."""

    name: str
    pipeline_key: str
    stage_key: str | None = None
    notes: str | None = None
    fields: dict[str, Any] = field(default_factory=dict)

    def payload(self) -> dict[str, Any]:
        body: dict[str, Any] = {"name": self.name}
        if self.stage_key:
            body["stageKey"] = self.stage_key
        if self.notes:
            body["notes"] = self.notes
        if self.fields:
            body["fields"] = dict(self.fields)
        return body


@dataclass(frozen=True)
class CrmBox:
    """Provider-persisted box as returned by the CRM."""

    key: str
    name: str
    pipeline_key: str
    stage_key: str | None = None
    fields: dict[str, Any] = field(default_factory=dict)
    created_timestamp: int | None = None
    last_updated_timestamp: int | None = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> CrmBox:
        return cls(
            key=str(data.get("key") or data.get("boxKey") or ""),
            name=str(data.get("name") or ""),
            pipeline_key=str(data.get("pipelineKey") or ""),
            stage_key=data.get("stageKey"),
            fields=dict(data.get("fields") or {}),
            created_timestamp=data.get("creationTimestamp", data.get("createdTimestamp")),
            last_updated_timestamp=data.get("lastUpdatedTimestamp"),
            raw=dict(data),
        )


@dataclass(frozen=True)
class CrmPipeline:
    key: str
    name: str
    stages: dict[str, str] = field(default_factory=dict)  # stage key -> stage name
    fields: dict[str, str] = field(default_factory=dict)  # field key -> field name
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> CrmPipeline:
        stages_raw = data.get("stages") or {}
        stages: dict[str, str] = {}
        if isinstance(stages_raw, dict):
            for k, v in stages_raw.items():
                stages[str(k)] = str((v or {}).get("name") or k) if isinstance(v, dict) else str(v)
        fields: dict[str, str] = {}
        for f in data.get("fields") or []:
            if isinstance(f, dict) and f.get("key") is not None:
                fields[str(f["key"])] = str(f.get("name") or f["key"])
        return cls(
            key=str(data.get("key") or data.get("pipelineKey") or ""),
            name=str(data.get("name") or ""),
            stages=stages,
            fields=fields,
            raw=dict(data),
        )
