from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from typing import Any

from pydantic import ValidationError

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


class ScriptedAutomation(BrowserAutomation):
    """
    A zero-network automation used for tests and --offline runs.

    Constructor args:
      - extracts: queued replies for extract(), consumed in order. Each item may be
                  a dict (validated against the requested schema, as the real AI
                  layer output would be), an ExtractResult, or None (soft failure).
                  An exhausted queue yields success=False.
      - acts:     queued replies for act(): ActResult or bool. Exhausted -> success.
      - fail_open / fail_navigation: error message; raises the matching hard error.

    Every call is appended to `calls` as (op, detail) for assertions.
    """

    def __init__(
        self,
        *,
        extracts: Iterable[Any] = (),
        acts: Iterable[ActResult | bool] = (),
        fail_open: str | None = None,
        fail_navigation: str | None = None,
    ):
        super().__init__()
        self._extracts: deque[Any] = deque(extracts)
        self._acts: deque[ActResult | bool] = deque(acts)
        self.fail_open = fail_open
        self.fail_navigation = fail_navigation
        self.calls: list[tuple[str, str]] = []
        self.opened: list[AutomationSession] = []
        self.closed: list[str] = []

    def open_session(self, options: SessionOptions) -> AutomationSession:
        self.calls.append(("open_session", options.alias))
        if self.fail_open:
            raise SessionError(self.fail_open)
        session = AutomationSession(
            session_id=f"scripted-{len(self.opened) + 1}",
            alias=options.alias,
            run_id=options.run_id,
            handle={"url": "about:blank"},
        )
        self.opened.append(session)
        return session

    def close_session(self, session: AutomationSession) -> None:
        self.calls.append(("close_session", session.session_id))
        self.closed.append(session.session_id)
        self._forget_lock(session)

    def navigate(self, session: AutomationSession, url: str) -> None:
        with self.session_lock(session):
            self.calls.append(("navigate", url))
            if self.fail_navigation:
                raise NavigationError(self.fail_navigation)
            session.handle["url"] = url

    def wait_for_settle(self, session: AutomationSession) -> bool:
        self.calls.append(("wait_for_settle", session.session_id))
        return True

    def extract(self, session: AutomationSession, schema: type[T], instruction: str) -> ExtractResult[T]:
        with self.session_lock(session):
            self.calls.append(("extract", schema.__name__))
            if not self._extracts:
                return ExtractResult(data=None, success=False, error="script exhausted")
            reply = self._extracts.popleft()
            if reply is None:
                return ExtractResult(data=None, success=False, error="scripted failure")
            if isinstance(reply, ExtractResult):
                return reply
            try:
                return ExtractResult(data=schema.model_validate(reply), success=True)
            except ValidationError as e:
                return ExtractResult(data=None, success=False, error=f"schema mismatch: {e.error_count()} errors")

    def act(self, session: AutomationSession, instruction: str) -> ActResult:
        with self.session_lock(session):
            self.calls.append(("act", instruction))
            if not self._acts:
                return ActResult(success=True, message="ok")
            reply = self._acts.popleft()
            if isinstance(reply, ActResult):
                return reply
            return ActResult(success=bool(reply), message="ok" if reply else "scripted failure")

    def screenshot(self, session: AutomationSession) -> bytes | None:
        self.calls.append(("screenshot", session.session_id))
        return b"\x89PNG scripted"
