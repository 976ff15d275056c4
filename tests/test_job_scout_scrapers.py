# tests/test_job_scout_scrapers.py
import pytest

from modules.job_scout.lib.automation import ScriptedAutomation, SessionOptions
from modules.job_scout.lib.models import FallbackOutcome, JobSource, RealOutcome, SearchCriteria
from modules.job_scout.lib.scrapers import ScraperError, all_sources, get
from modules.job_scout.lib.scrapers.boards import HiringCafeScraper, WorkAtAStartupScraper, YcJobsScraper
from modules.job_scout.lib.utils import stable_id


def _titles(*pairs):
    return {"job_titles": [{"title": t, "matches_target_role": m} for t, m in pairs]}


def _detail(title, company):
    return {"job": {"title": title, "company": company, "apply_button_text": "Apply"}}


def _url(u):
    return {"current_url": u}


def _scraper(cls, automation, **kw):
    session = automation.open_session(SessionOptions(run_id="run-1", alias="calm-otter-1"))
    kw.setdefault("new_tab_wait_seconds", 0)
    kw.setdefault("item_pause_seconds", 0)
    return cls(automation, session, **kw)


def _acts(automation):
    return [detail for op, detail in automation.calls if op == "act"]


# ----------------------------------------------------------------------
# Registry
# ----------------------------------------------------------------------
def test_registry_covers_every_board():
    assert set(all_sources()) == set(JobSource.scrapeable())
    assert get("hiringcafe") is HiringCafeScraper
    assert get(JobSource.YC_JOBS) is YcJobsScraper
    with pytest.raises(KeyError):
        get("unknown")


# ----------------------------------------------------------------------
# Live path
# ----------------------------------------------------------------------
def test_happy_path_collects_outbound_url(frozen_utc):
    auto = ScriptedAutomation(
        extracts=[
            _titles(("Developer Advocate", True), ("Backend Engineer", False)),
            _detail("Developer Advocate", "@ Acme"),
            _url("https://Jobs.Acme.example/da?ref=hc#apply"),
        ]
    )
    outcome = _scraper(HiringCafeScraper, auto).scrape(SearchCriteria())

    assert isinstance(outcome, RealOutcome) and not outcome.is_fallback
    (posting,) = outcome.postings
    assert posting.title == "Developer Advocate"
    assert posting.company == "Acme"
    assert posting.url == "https://jobs.acme.example/da?ref=hc"
    assert posting.id == stable_id("hiringcafe:https://jobs.acme.example/da?ref=hc")
    assert posting.location == "Unknown"
    assert posting.salary_usd_min is None
    assert posting.created_at == "2025-01-01T00:00:00Z"
    assert outcome.session_id == "scripted-1" and outcome.run_id == "run-1"

    acts = _acts(auto)
    assert "Developer Relations" in acts[0]  # search
    assert "Posted within" in acts[1]  # recency filter
    assert any("Switch to the most recently opened" in a for a in acts)
    assert any("Close the current tab" in a for a in acts)
    assert ("navigate", "https://hiring.cafe") in auto.calls


def test_search_is_retried_once():
    auto = ScriptedAutomation(acts=[False, True], extracts=[_titles()])
    outcome = _scraper(WorkAtAStartupScraper, auto).scrape(SearchCriteria())
    assert isinstance(outcome, RealOutcome)
    assert outcome.postings == ()
    assert len(_acts(auto)) == 2


def test_second_search_failure_falls_back():
    auto = ScriptedAutomation(acts=[False, False])
    outcome = _scraper(WorkAtAStartupScraper, auto).scrape(SearchCriteria())
    assert isinstance(outcome, FallbackOutcome)
    assert "search" in outcome.reason


def test_recency_filter_failure_is_ignored():
    auto = ScriptedAutomation(acts=[True, False], extracts=[_titles(("Other", False))])
    outcome = _scraper(HiringCafeScraper, auto).scrape(SearchCriteria())
    assert isinstance(outcome, RealOutcome)
    assert any(n.startswith("recency_filter") for n in outcome.notes)


def test_title_extraction_failure_falls_back():
    auto = ScriptedAutomation(extracts=[None])
    outcome = _scraper(YcJobsScraper, auto).scrape(SearchCriteria())
    assert outcome.is_fallback
    assert "title extraction" in outcome.reason


def test_zero_matches_is_empty_real_outcome():
    auto = ScriptedAutomation(extracts=[_titles(("Sales Lead", False), ("Backend Engineer", False))])
    outcome = _scraper(YcJobsScraper, auto).scrape(SearchCriteria())
    assert isinstance(outcome, RealOutcome)
    assert outcome.postings == ()


def test_failed_detail_extract_skips_only_that_item():
    auto = ScriptedAutomation(
        extracts=[
            _titles(("DevRel Lead", True), ("Developer Advocate", True)),
            None,
            _detail("Developer Advocate", "Beta"),
            _url("https://beta.example/careers/1"),
        ]
    )
    outcome = _scraper(WorkAtAStartupScraper, auto).scrape(SearchCriteria())
    assert [p.company for p in outcome.postings] == ["Beta"]
    assert any(n.startswith("detail_extract") for n in outcome.notes)


def test_expand_failure_twice_skips_item():
    # search ok, expand fails twice -> next item proceeds with default successes
    auto = ScriptedAutomation(
        acts=[True, False, False],
        extracts=[
            _titles(("DevRel Lead", True), ("Developer Advocate", True)),
            _detail("Developer Advocate", "Beta"),
            _url("https://beta.example/careers/1"),
        ],
    )
    outcome = _scraper(WorkAtAStartupScraper, auto).scrape(SearchCriteria())
    assert [p.title for p in outcome.postings] == ["Developer Advocate"]


@pytest.mark.parametrize(
    "reply",
    [
        _url("null"),
        _url(""),
        _url("https://workatastartup.com/companies/acme"),
        _url("about:blank"),
        _url("chrome://newtab/"),
        _url("chrome-error://chromewebdata/"),
        None,
    ],
)
def test_unusable_apply_url_uses_board_link(reply):
    auto = ScriptedAutomation(
        extracts=[
            _titles(("Developer Advocate", True)),
            _detail("Developer Advocate", "Acme Inc"),
            reply,
        ]
    )
    outcome = _scraper(WorkAtAStartupScraper, auto).scrape(SearchCriteria())
    (posting,) = outcome.postings
    assert posting.url == "https://www.workatastartup.com/jobs/job/Acme%20Inc/Developer%20Advocate"
    # the extra tab is still closed
    assert any("Close the current tab" in a for a in _acts(auto))


def test_schemeless_apply_url_is_kept():
    auto = ScriptedAutomation(
        extracts=[
            _titles(("Developer Advocate", True)),
            _detail("Developer Advocate", "Acme"),
            _url("jobs.acme.example/da"),
        ]
    )
    outcome = _scraper(WorkAtAStartupScraper, auto).scrape(SearchCriteria())
    assert outcome.postings[0].url == "https://jobs.acme.example/da"


def test_apply_in_same_tab_returns_to_board_for_next_item():
    # search, expand, apply, switch, close(fails: apply replaced the board tab)
    auto = ScriptedAutomation(
        acts=[True, True, True, True, False],
        extracts=[
            _titles(("DevRel Lead", True), ("Developer Advocate", True)),
            _detail("DevRel Lead", "Acme"),
            _url("https://acme.example/jobs/1"),
            _detail("Developer Advocate", "Beta"),
            _url("https://beta.example/jobs/2"),
        ],
    )
    outcome = _scraper(WorkAtAStartupScraper, auto).scrape(SearchCriteria())

    assert [p.company for p in outcome.postings] == ["Acme", "Beta"]
    assert [c for c in auto.calls if c[0] == "navigate"] == [
        ("navigate", "https://www.workatastartup.com/jobs"),
        ("navigate", "https://www.workatastartup.com/jobs"),
    ]
    acts = _acts(auto)
    assert sum("into the search input" in a for a in acts) == 2
    assert any(n.startswith("close_tab") for n in outcome.notes)


def test_board_unreachable_after_apply_keeps_collected_items():
    # item 0 leaves the board; both searches on the way back fail
    auto = ScriptedAutomation(
        acts=[True, True, True, True, False, False, False],
        extracts=[
            _titles(("DevRel Lead", True), ("Developer Advocate", True)),
            _detail("DevRel Lead", "Acme"),
            _url("https://acme.example/jobs/1"),
        ],
    )
    outcome = _scraper(WorkAtAStartupScraper, auto).scrape(SearchCriteria())

    assert isinstance(outcome, RealOutcome)
    assert [p.company for p in outcome.postings] == ["Acme"]
    assert any(n.startswith("return_to_board") and "1 item(s)" in n for n in outcome.notes)
    assert not any("Developer Advocate" in a and "expand" in a for a in _acts(auto))


def test_apply_click_failure_uses_board_link():
    # search, expand, apply(fails)
    auto = ScriptedAutomation(
        acts=[True, True, False],
        extracts=[_titles(("Developer Advocate", True)), _detail("Developer Advocate", "Acme")],
    )
    outcome = _scraper(WorkAtAStartupScraper, auto).scrape(SearchCriteria())
    assert outcome.postings[0].url.endswith("/job/Acme/Developer%20Advocate")


def test_max_details_caps_items():
    titles = _titles(*[(f"Developer Advocate {i}", True) for i in range(4)])
    extracts = [titles]
    for i in range(2):
        extracts += [_detail(f"Developer Advocate {i}", f"Co{i}"), _url(f"https://co{i}.example/job")]
    auto = ScriptedAutomation(extracts=extracts)
    outcome = _scraper(YcJobsScraper, auto, max_details=2).scrape(SearchCriteria())
    assert len(outcome.postings) == 2
    assert sum("to expand its details" in a for a in _acts(auto)) == 2


# ----------------------------------------------------------------------
# Fallback path (scenario C)
# ----------------------------------------------------------------------
@pytest.mark.parametrize("cls", [HiringCafeScraper, WorkAtAStartupScraper, YcJobsScraper])
def test_navigation_failure_yields_exact_fallback_set(cls, tmp_path):
    auto = ScriptedAutomation(fail_navigation="net::ERR_TIMED_OUT")
    outcome = _scraper(cls, auto, screenshot_dir=str(tmp_path)).scrape(SearchCriteria())

    assert isinstance(outcome, FallbackOutcome)
    assert outcome.reason == "net::ERR_TIMED_OUT"
    assert [p.title for p in outcome.postings] == [r.title for r in cls.fallback_items]
    assert [p.id for p in outcome.postings] == [
        stable_id(f"{cls.source.value}:{r.url}") for r in cls.fallback_items
    ]
    assert len(list(tmp_path.glob("*.png"))) == 1


def test_hiring_cafe_fallback_content():
    auto = ScriptedAutomation(fail_navigation="down")
    outcome = _scraper(HiringCafeScraper, auto).scrape(SearchCriteria())
    first = outcome.postings[0]
    assert first.title == "Senior Developer Relations Engineer"
    assert first.company == "TechCorp"
    assert first.location == "Remote"
    assert (first.salary_usd_min, first.salary_usd_max) == (120000.0, 160000.0)
    assert first.url == "https://hiring.cafe/job/1"


def test_unexpected_error_falls_back():
    class Exploding(ScriptedAutomation):
        def act(self, session, instruction):
            raise RuntimeError("driver crashed")

    outcome = _scraper(HiringCafeScraper, Exploding()).scrape(SearchCriteria())
    assert outcome.is_fallback
    assert "driver crashed" in outcome.reason


def test_broken_fallback_set_raises():
    class Broken(WorkAtAStartupScraper):
        fallback_items = ()

    auto = ScriptedAutomation(fail_navigation="down")
    with pytest.raises(ScraperError):
        _scraper(Broken, auto).scrape(SearchCriteria())
