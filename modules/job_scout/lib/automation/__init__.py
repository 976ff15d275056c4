# Playwright/Browserbase adapters are imported from their own modules so that
# importing the protocol never needs a browser installed.
from .base import (
    ActionFailure,
    ActResult,
    AutomationSession,
    BrowserAutomation,
    ExtractionFailure,
    ExtractResult,
    NavigationError,
    SessionError,
    SessionOptions,
)
from .scripted import ScriptedAutomation

__all__ = [
    "ActResult",
    "ActionFailure",
    "AutomationSession",
    "BrowserAutomation",
    "ExtractResult",
    "ExtractionFailure",
    "NavigationError",
    "ScriptedAutomation",
    "SessionError",
    "SessionOptions",
]
