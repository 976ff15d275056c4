from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .crm.mappers import CrmVocabulary, VocabularyError, load_vocabulary
from .models import CrmFieldKeyMap, JobSource, SearchCriteria
from .utils import mask_key, parse_csv, parse_number, truthy


# -----------------------------
# Exceptions
# -----------------------------
class ConfigError(ValueError):
    """Raised when provided kwargs/env cannot form a valid Settings."""


DEDUP_POLICIES = ("none", "crm_name", "ledger")

_REQUIRED_ENV = ("BROWSERBASE_API_KEY", "STREAK_API_KEY", "STREAK_PIPELINE_KEY")

_FIELD_KEY_ENV = {
    "job_title": "STREAK_FIELD_JOB_TITLE",
    "source": "STREAK_FIELD_SOURCE",
    "location": "STREAK_FIELD_LOCATION",
    "website": "STREAK_FIELD_WEBSITE",
}


# -----------------------------
# Models
# -----------------------------
@dataclass
class Settings:
    """
    Canonical configuration for one job_scout invocation.

    Built once at startup (CLI or tests) and handed to every component that needs
    it; nothing below this layer reads the environment.
    """

    # Credentials / provider targets
    browserbase_api_key: str
    streak_api_key: str
    streak_pipeline_key: str
    browserbase_project_id: str | None = None
    openai_api_key: str | None = None
    openai_model: str = "gpt-4.1-mini"
    openai_temperature: float = 0.0

    # What to look for
    criteria: SearchCriteria = field(default_factory=SearchCriteria)
    sources: tuple[JobSource, ...] = field(default_factory=JobSource.scrapeable)

    # CRM mapping
    stage_key: str | None = None
    field_keys: CrmFieldKeyMap = field(default_factory=CrmFieldKeyMap)
    vocabulary: CrmVocabulary = field(default_factory=load_vocabulary)

    # Runtime behavior
    dry_run: bool = False
    offline: bool = False
    dedup_policy: str = "none"
    ledger_path: str = "local/state/job_scout.db"
    screenshot_dir: str | None = None
    max_details: int = 5
    new_tab_wait_seconds: float = 3.0
    item_pause_seconds: float = 1.0

    # ------------- convenience -------------
    def summary(self) -> dict[str, Any]:
        """Loggable view of the settings with secrets masked."""
        return {
            "env": {
                "browserbase_api_key": mask_key(self.browserbase_api_key),
                "streak_api_key": mask_key(self.streak_api_key),
                "streak_pipeline_key": mask_key(self.streak_pipeline_key),
                "openai_api_key": mask_key(self.openai_api_key) if self.openai_api_key else None,
                "stage_key": self.stage_key,
                "field_keys": self.field_keys.to_dict(),
            },
            "options": {
                **self.criteria.to_dict(),
                "sources": [s.value for s in self.sources],
                "dry_run": self.dry_run,
                "offline": self.offline,
                "dedup_policy": self.dedup_policy,
                "max_details": self.max_details,
            },
        }

    # ------------- constructors -------------
    @classmethod
    def from_env_and_kwargs(
        cls,
        kwargs: Mapping[str, Any] | None,
        environ: Mapping[str, str] | None = None,
    ) -> Settings:
        """
        Build Settings from CLI kwargs layered over environment values.

        Expected kwargs (all optional):

            keywords: str (CSV) | list[str]   # falls back to DEFAULT_KEYWORDS
            remote_only: bool = false
            location: str                     # falls back to DEFAULT_LOCATION
            salary_min: number | str          # falls back to DEFAULT_SALARY_MIN
            dry_run: bool = false
            offline: bool = false             # scripted automation, no browser
            sources: str (CSV) | list[str]    # falls back to JOB_SCOUT_SOURCES, then all boards
            dedup_policy: "none" | "crm_name" | "ledger"
        """
        kw = dict(kwargs or {})
        env = os.environ if environ is None else environ

        def env_str(name: str) -> str | None:
            val = (env.get(name) or "").strip()
            return val or None

        missing = [name for name in _REQUIRED_ENV if not env_str(name)]
        if missing:
            raise ConfigError("Invalid environment configuration: missing " + ", ".join(missing))

        # Criteria: CLI first, then DEFAULT_* env
        raw_keywords = kw.get("keywords")
        keywords = list(raw_keywords) if isinstance(raw_keywords, (list, tuple)) else parse_csv(raw_keywords)
        keywords = [str(k).strip() for k in keywords if str(k).strip()]
        if not keywords:
            keywords = parse_csv(env_str("DEFAULT_KEYWORDS"))

        location = str(kw.get("location") or "").strip() or env_str("DEFAULT_LOCATION")

        salary_min = parse_number(kw.get("salary_min"))
        if salary_min is None:
            salary_min = parse_number(env_str("DEFAULT_SALARY_MIN"))

        criteria = SearchCriteria(
            keywords=tuple(keywords),
            remote_only=truthy(kw.get("remote_only")),
            location=location,
            minimum_salary_usd=salary_min,
        )

        # Sources
        raw_sources = kw.get("sources")
        source_names = (
            list(raw_sources) if isinstance(raw_sources, (list, tuple)) else parse_csv(raw_sources)
        ) or parse_csv(env_str("JOB_SCOUT_SOURCES"))
        sources = _parse_sources(source_names) if source_names else JobSource.scrapeable()

        # CRM field keys + vocabulary
        field_keys = CrmFieldKeyMap(**{attr: env_str(name) for attr, name in _FIELD_KEY_ENV.items()})
        try:
            vocabulary = load_vocabulary(env_str("STREAK_VOCABULARY_PATH"))
        except VocabularyError as e:
            raise ConfigError(str(e)) from e

        dedup_policy = str(kw.get("dedup_policy") or env_str("JOB_SCOUT_DEDUP_POLICY") or "none").strip().lower()

        try:
            max_details = int(kw.get("max_details") or env_str("JOB_SCOUT_MAX_DETAILS") or 5)
            temperature = float(env_str("OPENAI_TEMP_SCOUT") or 0.0)
        except ValueError as e:
            raise ConfigError(f"Invalid numeric setting: {e}") from e

        settings = cls(
            browserbase_api_key=env_str("BROWSERBASE_API_KEY") or "",
            streak_api_key=env_str("STREAK_API_KEY") or "",
            streak_pipeline_key=env_str("STREAK_PIPELINE_KEY") or "",
            browserbase_project_id=env_str("BROWSERBASE_PROJECT_ID"),
            openai_api_key=env_str("OPENAI_API_KEY"),
            openai_model=env_str("OPENAI_MODEL_SCOUT") or "gpt-4.1-mini",
            openai_temperature=temperature,
            criteria=criteria,
            sources=sources,
            stage_key=env_str("STREAK_DEFAULT_STAGE_KEY"),
            field_keys=field_keys,
            vocabulary=vocabulary,
            dry_run=truthy(kw.get("dry_run")),
            offline=truthy(kw.get("offline")),
            dedup_policy=dedup_policy,
            ledger_path=env_str("JOB_SCOUT_LEDGER_PATH") or "local/state/job_scout.db",
            screenshot_dir=env_str("JOB_SCOUT_SCREENSHOT_DIR"),
            max_details=max_details,
        )
        _validate_settings(settings)
        return settings


# -----------------------------
# Helpers
# -----------------------------
def _parse_sources(names: list[str]) -> tuple[JobSource, ...]:
    out: list[JobSource] = []
    for name in names:
        src = JobSource.parse(name)
        if src is JobSource.UNKNOWN:
            valid = ", ".join(s.value for s in JobSource.scrapeable())
            raise ConfigError(f"Unknown source {name!r}; expected one of: {valid}")
        if src not in out:
            out.append(src)
    return tuple(out)


def _validate_settings(s: Settings) -> None:
    if s.dedup_policy not in DEDUP_POLICIES:
        raise ConfigError(f"'dedup_policy' must be one of {DEDUP_POLICIES}, got {s.dedup_policy!r}.")
    if s.max_details <= 0:
        raise ConfigError("'max_details' must be >= 1.")
    if s.criteria.minimum_salary_usd is not None and s.criteria.minimum_salary_usd < 0:
        raise ConfigError("'salary_min' cannot be negative.")
    if s.dedup_policy == "ledger" and not s.ledger_path.strip():
        raise ConfigError("'JOB_SCOUT_LEDGER_PATH' cannot be empty with the ledger dedup policy.")
    if not s.sources:
        raise ConfigError("No sources selected.")
