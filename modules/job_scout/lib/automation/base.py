from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T", bound=BaseModel)


# -----------------------------
# Exceptions
# -----------------------------
class SessionError(RuntimeError):
    """Hard failure: the automation session cannot be opened or used."""


class NavigationError(SessionError):
    """Hard failure: a page load failed or timed out."""


class ExtractionFailure(RuntimeError):
    """Soft failure: the AI layer produced no data conforming to the schema."""


class ActionFailure(RuntimeError):
    """Soft failure: the AI layer could not perform the requested UI action."""


# -----------------------------
# Models
# -----------------------------
@dataclass(frozen=True)
class SessionOptions:
    run_id: str
    alias: str
    project_id: str | None = None


@dataclass(frozen=True)
class AutomationSession:
    """
    One lease on a remote browser. `handle` is provider-specific and opaque to
    everything except the BrowserAutomation that created it.
    """

    session_id: str
    alias: str
    run_id: str
    handle: Any = field(default=None, repr=False, compare=False)


@dataclass(frozen=True)
class ExtractResult(Generic[T]):
    """`data` is only meaningful when `success` is True."""

    data: T | None
    success: bool
    error: str | None = None

    def unwrap(self) -> T:
        if not self.success or self.data is None:
            raise ExtractionFailure(self.error or "extraction did not succeed")
        return self.data


@dataclass(frozen=True)
class ActResult:
    success: bool
    message: str = ""

    def raise_for_failure(self) -> None:
        if not self.success:
            raise ActionFailure(self.message or "action did not succeed")


# -----------------------------
# Protocol
# -----------------------------
class BrowserAutomation(ABC):
    """
    Remote browser session + AI act/extract layer.

    Error model:
      - open_session / navigate raise (SessionError / NavigationError): hard failures.
      - extract / act return results with success=False: soft failures.
      - close_session / wait_for_settle / screenshot never raise.

    The browser has a single active page, so calls against one session are
    serialized through `session_lock`.
    """

    def __init__(self) -> None:
        self._locks: dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def session_lock(self, session: AutomationSession) -> Iterator[None]:
        with self._locks_guard:
            lock = self._locks.setdefault(session.session_id, threading.RLock())
        with lock:
            yield

    def _forget_lock(self, session: AutomationSession) -> None:
        with self._locks_guard:
            self._locks.pop(session.session_id, None)

    @abstractmethod
    def open_session(self, options: SessionOptions) -> AutomationSession:
        raise NotImplementedError

    @abstractmethod
    def close_session(self, session: AutomationSession) -> None:
        raise NotImplementedError

    @abstractmethod
    def navigate(self, session: AutomationSession, url: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def wait_for_settle(self, session: AutomationSession) -> bool:
        raise NotImplementedError

    @abstractmethod
    def extract(self, session: AutomationSession, schema: type[T], instruction: str) -> ExtractResult[T]:
        raise NotImplementedError

    @abstractmethod
    def act(self, session: AutomationSession, instruction: str) -> ActResult:
        raise NotImplementedError

    def screenshot(self, session: AutomationSession) -> bytes | None:
        """Best-effort PNG capture for diagnostics; None when unsupported."""
        return None
