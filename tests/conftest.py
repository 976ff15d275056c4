# tests/conftest.py
import os
import tempfile
import types

import pytest
from freezegun import freeze_time

from modules.job_scout.lib import config as js_config
from modules.job_scout.lib.crm.client import CrmApiError
from modules.job_scout.lib.models import CrmBox, CrmPipeline, JobPosting, JobSource, REMOTE_LOCATION
from modules.job_scout.lib.utils import stable_id


# ---------------------------------------------------------------------
# Live tests are opt-in: use --live or RUN_LIVE_TESTS=1
# ---------------------------------------------------------------------
def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--live",
        action="store_true",
        default=False,
        help="Run tests marked as 'live' (network calls or external services).",
    )


def pytest_configure(config: pytest.Config) -> None:
    # Marker registration (so pytest --markers shows it)
    config.addinivalue_line(
        "markers",
        "live: marks tests that perform live network calls or hit external services (skipped by default).",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    run_live = config.getoption("--live") or os.getenv("RUN_LIVE_TESTS") == "1"
    if run_live:
        return
    skip_live = pytest.mark.skip(reason="live tests disabled (use --live or RUN_LIVE_TESTS=1)")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


# ---------------------------------------------------------------------
# Test-wide env defaults (autouse, function-scoped)
# ---------------------------------------------------------------------
@pytest.fixture(autouse=True)
def _env_defaults(monkeypatch):
    # Write logs to a throwaway dir so real logs stay clean (per test)
    tmp_logs = tempfile.mkdtemp(prefix="js-pytest-logs-")
    monkeypatch.setenv("LOG_DIR", tmp_logs)
    monkeypatch.setenv("ACTIVITY_LOG_PREFIX", "activity-test")
    monkeypatch.setenv("ERROR_LOG_PREFIX", "error-test")
    yield


@pytest.fixture
def scout_env(monkeypatch, tmp_path):
    """Minimal valid environment for Settings.from_env_and_kwargs()."""
    env = {
        "BROWSERBASE_API_KEY": "bb-test-key",
        "STREAK_API_KEY": "streak-test-key",
        "STREAK_PIPELINE_KEY": "pipe-1",
        "STREAK_FIELD_JOB_TITLE": "1001",
        "STREAK_FIELD_SOURCE": "1002",
        "STREAK_FIELD_LOCATION": "1003",
        "STREAK_FIELD_WEBSITE": "1004",
        "JOB_SCOUT_LEDGER_PATH": str(tmp_path / "ledger.db"),
    }
    for name in (
        "BROWSERBASE_PROJECT_ID",
        "OPENAI_API_KEY",
        "DEFAULT_KEYWORDS",
        "DEFAULT_LOCATION",
        "DEFAULT_SALARY_MIN",
        "STREAK_DEFAULT_STAGE_KEY",
        "STREAK_VOCABULARY_PATH",
        "JOB_SCOUT_SOURCES",
        "JOB_SCOUT_DEDUP_POLICY",
        "JOB_SCOUT_SCREENSHOT_DIR",
        "JOB_SCOUT_MAX_DETAILS",
    ):
        monkeypatch.delenv(name, raising=False)
    for k, v in env.items():
        monkeypatch.setenv(k, v)
    return env


@pytest.fixture
def make_settings(scout_env):
    """
    Return a factory for **brand-new** Settings built from the scout_env
    environment. Scraper pauses are zeroed so tests never sleep.
    """

    def _make(**kwargs):
        settings = js_config.Settings.from_env_and_kwargs(kwargs)
        settings.new_tab_wait_seconds = 0.0
        settings.item_pause_seconds = 0.0
        return settings

    return _make


@pytest.fixture
def frozen_utc():
    with freeze_time("2025-01-01T00:00:00Z"):
        yield


@pytest.fixture
def make_posting():
    def _make(
        title="Developer Advocate",
        company="Acme",
        location=REMOTE_LOCATION,
        url="https://acme.example/jobs/1",
        source=JobSource.HIRING_CAFE,
        **extra,
    ):
        return JobPosting(
            id=stable_id(f"{source.value}:{url}"),
            title=title,
            company=company,
            url=url,
            source=source,
            created_at="2025-01-01T00:00:00Z",
            location=location,
            **extra,
        )

    return _make


class FakeCrm:
    """
    In-memory stand-in for StreakClient.

    fail_names: box names whose create_box raises CrmApiError(500).
    """

    def __init__(self, *, existing=(), fail_names=()):
        self.existing = [CrmBox(key=f"old-{i}", name=n, pipeline_key="pipe-1") for i, n in enumerate(existing)]
        self.fail_names = set(fail_names)
        self.create_calls = []
        self.list_calls = 0
        self.closed = False

    def list_pipelines(self):
        return [CrmPipeline(key="pipe-1", name="Job Hunt")]

    def get_pipeline(self, pipeline_key):
        return CrmPipeline(key=pipeline_key, name="Job Hunt")

    def list_boxes(self, pipeline_key):
        self.list_calls += 1
        return list(self.existing)

    def create_box(self, request):
        self.create_calls.append(request)
        if request.name in self.fail_names:
            raise CrmApiError(500, '{"error":"boom"}', op="create_box")
        return CrmBox(
            key=f"box-{len(self.create_calls)}",
            name=request.name,
            pipeline_key=request.pipeline_key,
            fields=dict(request.fields),
        )

    def close(self):
        self.closed = True


@pytest.fixture
def fake_crm():
    return FakeCrm


@pytest.fixture
def static_scraper():
    """
    Return a factory for scraper classes that yield fixed postings without
    touching the automation (beyond holding the session).
    """
    from modules.job_scout.lib.models import RealOutcome
    from modules.job_scout.lib.scrapers.base import BaseScraper

    def _factory(postings, source=JobSource.HIRING_CAFE):
        class Static(BaseScraper):
            def scrape(self, criteria):
                return RealOutcome(
                    source=source,
                    postings=tuple(postings),
                    session_id=self.session.session_id,
                    run_id=self.session.run_id,
                )

        Static.source = source
        return Static

    return types.SimpleNamespace(make=_factory)
