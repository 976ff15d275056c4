from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import requests
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from .. import logging_bridge
from ..http_client import HttpClient, decode_json
from ..llm import OpenAIJsonChat
from .base import (
    ActResult,
    AutomationSession,
    BrowserAutomation,
    ExtractResult,
    NavigationError,
    SessionError,
    SessionOptions,
    T,
)
from .page_agent import PageAgent

LOG = logging.getLogger(__name__)

BROWSERBASE_API_BASE = "https://api.browserbase.com/v1"


class BrowserbaseClient:
    """Session lifecycle calls against the Browserbase REST API."""

    def __init__(self, api_key: str, *, base_url: str = BROWSERBASE_API_BASE, timeout: float = 30.0):
        if not api_key:
            raise ValueError("BrowserbaseClient requires an api_key")
        self._http = HttpClient(
            base_url,
            headers={"X-BB-API-Key": api_key, "Content-Type": "application/json"},
            timeout=timeout,
            retry_methods=("GET",),
        )

    def list_projects(self) -> list[dict[str, Any]]:
        """Return available projects, or [] if the call fails (logged)."""
        try:
            resp = self._http.request("GET", "projects")
            if resp.status_code != 200:
                raise ValueError(f"HTTP {resp.status_code}: {resp.text[:200]}")
            data = decode_json(resp)
        except (requests.RequestException, ValueError) as e:
            LOG.warning("Could not list Browserbase projects: %s", e)
            return []
        return [p for p in data or [] if isinstance(p, dict)]

    def create_session(self, project_id: str | None) -> dict[str, Any]:
        body = {"projectId": project_id} if project_id else {}
        try:
            resp = self._http.request("POST", "sessions", json_body=body)
        except requests.RequestException as e:
            raise SessionError(f"Failed to start Browserbase session: {e!r}") from e
        if resp.status_code not in (200, 201):
            raise SessionError(f"Failed to start Browserbase session ({resp.status_code}): {resp.text[:500]}")
        try:
            data = decode_json(resp)
        except ValueError as e:
            raise SessionError(str(e)) from e
        if not isinstance(data, dict) or not data.get("id"):
            raise SessionError("Browserbase session response carried no id")
        return data

    def release_session(self, session_id: str, project_id: str | None) -> None:
        body: dict[str, Any] = {"status": "REQUEST_RELEASE"}
        if project_id:
            body["projectId"] = project_id
        resp = self._http.request("POST", f"sessions/{session_id}", json_body=body)
        if resp.status_code >= 300:
            raise RuntimeError(f"release failed ({resp.status_code}): {resp.text[:200]}")

    def close(self) -> None:
        self._http.close()


@dataclass
class BrowserHandle:
    """Mutable per-session state behind AutomationSession.handle."""

    project_id: str | None
    connect_url: str
    playwright: Any = None
    browser: Any = None
    context: Any = None
    page: Any = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False)


class BrowserbaseAutomation(BrowserAutomation):
    """
    Browserbase-hosted Chromium driven over CDP with Playwright; act/extract are
    interpreted by PageAgent.
    """

    def __init__(
        self,
        client: BrowserbaseClient,
        agent: PageAgent,
        *,
        project_id: str | None = None,
        navigation_timeout_ms: int = 45000,
        settle_timeout_ms: int = 15000,
        playwright_factory: Callable[[], Any] = sync_playwright,
    ):
        super().__init__()
        self.client = client
        self.agent = agent
        self.project_id = project_id
        self.navigation_timeout_ms = navigation_timeout_ms
        self.settle_timeout_ms = settle_timeout_ms
        self._playwright_factory = playwright_factory

    @classmethod
    def from_settings(cls, settings: Any) -> BrowserbaseAutomation:
        llm = OpenAIJsonChat(
            api_key=settings.openai_api_key or "",
            model=settings.openai_model,
            temperature=settings.openai_temperature,
        )
        return cls(
            BrowserbaseClient(settings.browserbase_api_key),
            PageAgent(llm),
            project_id=settings.browserbase_project_id,
        )

    # ---- lifecycle ----
    def open_session(self, options: SessionOptions) -> AutomationSession:
        project_id = options.project_id or self.project_id
        if not project_id:
            projects = self.client.list_projects()
            if projects:
                project_id = str(projects[0].get("id") or "") or None
                LOG.info("Using Browserbase project %s (%s)", projects[0].get("name"), project_id)
            else:
                LOG.info("No Browserbase projects found; creating session without a project id")

        data = self.client.create_session(project_id)
        connect_url = str(data.get("connectUrl") or "")
        if not connect_url:
            raise SessionError(f"Browserbase session {data['id']} has no connectUrl")

        handle = BrowserHandle(project_id=project_id, connect_url=connect_url, raw=data)
        session = AutomationSession(
            session_id=str(data["id"]),
            alias=options.alias,
            run_id=options.run_id,
            handle=handle,
        )
        try:
            handle.playwright = self._playwright_factory().start()
            handle.browser = handle.playwright.chromium.connect_over_cdp(connect_url)
            contexts = handle.browser.contexts
            handle.context = contexts[0] if contexts else handle.browser.new_context()
            pages = handle.context.pages
            handle.page = pages[0] if pages else handle.context.new_page()
        except PlaywrightError as e:
            self.close_session(session)
            raise SessionError(f"Could not attach to Browserbase session {session.session_id}: {e}") from e
        return session

    def close_session(self, session: AutomationSession) -> None:
        handle: BrowserHandle | None = session.handle
        steps: list[tuple[str, Callable[[], Any]]] = []
        if handle is not None:
            if handle.browser is not None:
                steps.append(("browser.close", handle.browser.close))
            if handle.playwright is not None:
                steps.append(("playwright.stop", handle.playwright.stop))
        project_id = handle.project_id if handle is not None else self.project_id
        steps.append(("release", lambda: self.client.release_session(session.session_id, project_id)))

        for name, step in steps:
            try:
                step()
            except Exception as e:  # closing is best-effort on every path
                logging_bridge.error({
                    "component": "job_scout.automation",
                    "op": "close_session",
                    "step": name,
                    "session_id": session.session_id,
                    "run_id": session.run_id,
                    "error": repr(e),
                })
        self._forget_lock(session)

    # ---- page operations ----
    def navigate(self, session: AutomationSession, url: str) -> None:
        with self.session_lock(session):
            try:
                session.handle.page.goto(url, wait_until="domcontentloaded", timeout=self.navigation_timeout_ms)
            except PlaywrightError as e:
                raise NavigationError(f"navigation to {url} failed: {e}") from e

    def wait_for_settle(self, session: AutomationSession) -> bool:
        with self.session_lock(session):
            try:
                session.handle.page.wait_for_load_state("networkidle", timeout=self.settle_timeout_ms)
                return True
            except PlaywrightError as e:
                LOG.debug("wait_for_settle gave up on %s: %s", session.session_id, e)
                return False

    def extract(self, session: AutomationSession, schema: type[T], instruction: str) -> ExtractResult[T]:
        with self.session_lock(session):
            return self.agent.extract(session.handle, schema, instruction)

    def act(self, session: AutomationSession, instruction: str) -> ActResult:
        with self.session_lock(session):
            return self.agent.act(session.handle, instruction)

    def screenshot(self, session: AutomationSession) -> bytes | None:
        with self.session_lock(session):
            try:
                return session.handle.page.screenshot()
            except PlaywrightError as e:
                LOG.debug("screenshot failed for %s: %s", session.session_id, e)
                return None
