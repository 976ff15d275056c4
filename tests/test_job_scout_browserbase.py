# tests/test_job_scout_browserbase.py
import json
import types

import pytest
import requests
from playwright.sync_api import Error as PlaywrightError

from modules.job_scout.lib.automation.base import NavigationError, SessionError, SessionOptions
from modules.job_scout.lib.automation.browserbase import BrowserbaseAutomation, BrowserbaseClient


class FakeBrowserbase:
    def __init__(self, projects=({"id": "proj-1", "name": "Default"},)):
        self.projects = list(projects)
        self.created = []
        self.released = []

    def list_projects(self):
        return self.projects

    def create_session(self, project_id):
        self.created.append(project_id)
        return {"id": "bb-sess-1", "connectUrl": "wss://connect.browserbase.test/bb-sess-1"}

    def release_session(self, session_id, project_id):
        self.released.append((session_id, project_id))


def _fake_playwright(*, fail_connect=False, fail_browser_close=False, fail_goto=False):
    state = types.SimpleNamespace(stopped=False, browser_closed=False, connected_to=None)

    def goto(url, wait_until=None, timeout=None):
        if fail_goto:
            raise PlaywrightError("net::ERR_NAME_NOT_RESOLVED")
        page.url = url

    page = types.SimpleNamespace(url="about:blank", goto=goto)
    context = types.SimpleNamespace(pages=[page])

    def browser_close():
        if fail_browser_close:
            raise RuntimeError("already gone")
        state.browser_closed = True

    browser = types.SimpleNamespace(contexts=[context], close=browser_close)

    def connect_over_cdp(url):
        if fail_connect:
            raise PlaywrightError("handshake failed")
        state.connected_to = url
        return browser

    def stop():
        state.stopped = True

    pw = types.SimpleNamespace(chromium=types.SimpleNamespace(connect_over_cdp=connect_over_cdp), stop=stop)
    factory = lambda: types.SimpleNamespace(start=lambda: pw)  # noqa: E731
    return factory, state, page


def _automation(client, factory, **kw):
    return BrowserbaseAutomation(client, agent=None, playwright_factory=factory, **kw)


def test_open_discovers_project_and_attaches():
    client = FakeBrowserbase()
    factory, state, page = _fake_playwright()
    auto = _automation(client, factory)

    session = auto.open_session(SessionOptions(run_id="r1", alias="keen-lynx-1"))

    assert session.session_id == "bb-sess-1"
    assert client.created == ["proj-1"]
    assert state.connected_to == "wss://connect.browserbase.test/bb-sess-1"
    assert session.handle.page is page

    auto.close_session(session)
    assert state.browser_closed and state.stopped
    assert client.released == [("bb-sess-1", "proj-1")]


def test_explicit_project_skips_discovery():
    client = FakeBrowserbase(projects=())
    factory, _state, _page = _fake_playwright()
    session = _automation(client, factory, project_id="proj-9").open_session(SessionOptions(run_id="r", alias="a"))
    assert client.created == ["proj-9"]
    assert session.handle.project_id == "proj-9"


def test_attach_failure_raises_session_error_and_releases():
    client = FakeBrowserbase()
    factory, _state, _page = _fake_playwright(fail_connect=True)
    with pytest.raises(SessionError):
        _automation(client, factory).open_session(SessionOptions(run_id="r", alias="a"))
    assert client.released == [("bb-sess-1", "proj-1")]


def test_close_is_best_effort():
    client = FakeBrowserbase()
    factory, state, _page = _fake_playwright(fail_browser_close=True)
    auto = _automation(client, factory)
    session = auto.open_session(SessionOptions(run_id="r", alias="a"))
    auto.close_session(session)  # must not raise
    assert state.stopped
    assert client.released


def test_navigation_failure_is_hard():
    factory, _state, _page = _fake_playwright(fail_goto=True)
    auto = _automation(FakeBrowserbase(), factory)
    session = auto.open_session(SessionOptions(run_id="r", alias="a"))
    with pytest.raises(NavigationError):
        auto.navigate(session, "https://hiring.cafe")


# ----------------------------------------------------------------------
# REST client
# ----------------------------------------------------------------------
def _response(status, body):
    r = requests.Response()
    r.status_code = status
    r._content = json.dumps(body).encode("utf-8")
    r.url = "https://api.browserbase.com/v1/x"
    return r


def test_rest_client_headers_and_errors(monkeypatch):
    client = BrowserbaseClient("bb-key")
    assert client._http.session.headers["X-BB-API-Key"] == "bb-key"

    calls = []
    replies = [
        _response(500, {"error": "x"}),
        _response(201, {"id": "s1", "connectUrl": "wss://c"}),
        _response(402, {"error": "quota"}),
        _response(200, {"ok": True}),
    ]

    def fake_request(method, url, json=None, params=None, timeout=None):
        calls.append((method, url, json))
        return replies.pop(0)

    monkeypatch.setattr(client._http.session, "request", fake_request)

    assert client.list_projects() == []
    assert client.create_session("proj-1")["id"] == "s1"
    with pytest.raises(SessionError):
        client.create_session(None)
    client.release_session("s1", "proj-1")

    assert calls[1] == ("POST", "https://api.browserbase.com/v1/sessions", {"projectId": "proj-1"})
    assert calls[2][2] == {}
    assert calls[3] == (
        "POST",
        "https://api.browserbase.com/v1/sessions/s1",
        {"status": "REQUEST_RELEASE", "projectId": "proj-1"},
    )
