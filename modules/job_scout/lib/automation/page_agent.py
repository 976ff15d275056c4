"""
LLM-driven page interpretation for Playwright pages.

extract: page text + URL + JSON schema -> model JSON -> validated pydantic object.
act:     indexed interactive elements + open tabs -> one model-chosen action,
         executed with Playwright.

Both return result objects; nothing here raises for a page the model cannot handle.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Literal

from bs4 import BeautifulSoup
from playwright.sync_api import Error as PlaywrightError
from pydantic import BaseModel, Field, ValidationError

from ..llm import LlmError, OpenAIJsonChat
from .base import ActResult, ExtractResult, T

log = logging.getLogger(__name__)

INDEX_ATTR = "data-scout-idx"

# Tags every visible interactive element with INDEX_ATTR and returns a summary list.
_COLLECT_ELEMENTS_JS = """
(args) => {
  const [attr, maxElements] = args;
  const selector = 'a, button, input, select, textarea, [role="button"], [role="link"], '
    + '[role="tab"], [role="option"], [role="combobox"], [role="menuitem"], [onclick]';
  document.querySelectorAll('[' + attr + ']').forEach(el => el.removeAttribute(attr));
  const out = [];
  let idx = 0;
  for (const el of document.querySelectorAll(selector)) {
    const rect = el.getBoundingClientRect();
    const style = window.getComputedStyle(el);
    if (rect.width === 0 || rect.height === 0 || style.visibility === 'hidden' || style.display === 'none') {
      continue;
    }
    el.setAttribute(attr, String(idx));
    out.push({
      index: idx,
      tag: el.tagName.toLowerCase(),
      role: el.getAttribute('role') || '',
      type: el.getAttribute('type') || '',
      text: (el.innerText || el.value || '').trim().replace(/\\s+/g, ' ').slice(0, 120),
      label: el.getAttribute('aria-label') || el.getAttribute('placeholder') || el.getAttribute('title') || '',
      href: el.getAttribute('href') || '',
    });
    idx += 1;
    if (idx >= maxElements) break;
  }
  return out;
}
"""

_EXTRACT_SYSTEM = (
    "You read web pages and extract structured data. "
    "Reply with ONLY a JSON object that validates against the provided json_schema. "
    "Use current_url when asked for the URL of the page. "
    "Do not invent values that are not on the page."
)

_ACT_SYSTEM = (
    "You operate a web browser for a user. Given the user's instruction, the open tabs and "
    "the indexed interactive elements of the current page, choose exactly ONE action and "
    "reply with ONLY a JSON object: "
    '{"action": "click|fill|fill_and_submit|select|press|switch_tab|close_tab|none", '
    '"index": <element index, or tab index for switch_tab>, "value": <text for fill/select, key for press>, '
    '"reason": <short explanation>}. '
    'Use "switch_tab" with index -1 for the newest tab. Use "none" if the instruction cannot be done.'
)


class AgentAction(BaseModel):
    action: Literal["click", "fill", "fill_and_submit", "select", "press", "switch_tab", "close_tab", "none"]
    index: int | None = None
    value: str | None = None
    reason: str = Field(default="")


def page_text(html: str, max_chars: int = 20000) -> str:
    """Visible-ish text of an HTML document, blank lines collapsed, truncated."""
    soup = BeautifulSoup(html or "", "html5lib")
    for tag in soup(["script", "style", "noscript", "svg", "template"]):
        tag.decompose()
    text = soup.get_text("\n", strip=True)
    text = re.sub(r"\n{2,}", "\n", text)
    return text[:max_chars]


class PageAgent:
    """
    Works on a mutable browser handle exposing `.context` (Playwright
    BrowserContext) and `.page` (the active Page); tab switches update `.page`.
    """

    def __init__(
        self,
        llm: OpenAIJsonChat,
        *,
        max_text_chars: int = 20000,
        max_elements: int = 150,
        action_timeout_ms: int = 10000,
    ):
        self.llm = llm
        self.max_text_chars = max_text_chars
        self.max_elements = max_elements
        self.action_timeout_ms = action_timeout_ms

    # ---- extract ----
    def extract(self, handle: Any, schema: type[T], instruction: str) -> ExtractResult[T]:
        page = handle.page
        try:
            payload = {
                "instruction": instruction,
                "current_url": page.url,
                "page_title": page.title(),
                "page_text": page_text(page.content(), self.max_text_chars),
                "json_schema": schema.model_json_schema(),
            }
        except PlaywrightError as e:
            return ExtractResult(data=None, success=False, error=f"page read failed: {e}")

        try:
            data = self.llm.complete_json(_EXTRACT_SYSTEM, json.dumps(payload, ensure_ascii=False))
        except LlmError as e:
            return ExtractResult(data=None, success=False, error=str(e))

        try:
            return ExtractResult(data=schema.model_validate(data), success=True)
        except ValidationError as e:
            log.debug("extract output did not match %s: %s", schema.__name__, e)
            return ExtractResult(data=None, success=False, error=f"schema mismatch: {e.error_count()} errors")

    # ---- act ----
    def act(self, handle: Any, instruction: str) -> ActResult:
        page = handle.page
        try:
            elements = page.evaluate(_COLLECT_ELEMENTS_JS, [INDEX_ATTR, self.max_elements])
            tabs = [{"index": i, "url": p.url, "title": _safe_title(p)} for i, p in enumerate(handle.context.pages)]
        except PlaywrightError as e:
            return ActResult(success=False, message=f"page read failed: {e}")

        payload = {
            "instruction": instruction,
            "current_url": page.url,
            "tabs": tabs,
            "elements": elements,
        }
        try:
            plan = AgentAction.model_validate(
                self.llm.complete_json(_ACT_SYSTEM, json.dumps(payload, ensure_ascii=False))
            )
        except (LlmError, ValidationError) as e:
            return ActResult(success=False, message=f"no usable action: {e}")

        try:
            return self._execute(handle, plan)
        except PlaywrightError as e:
            return ActResult(success=False, message=f"{plan.action} failed: {e}")

    def _execute(self, handle: Any, plan: AgentAction) -> ActResult:
        page = handle.page
        timeout = self.action_timeout_ms

        if plan.action == "none":
            return ActResult(success=False, message=plan.reason or "model declined the action")

        if plan.action == "press":
            page.keyboard.press(plan.value or "Enter")
            return ActResult(success=True, message=f"pressed {plan.value or 'Enter'}")

        if plan.action == "switch_tab":
            pages = handle.context.pages
            if not pages:
                return ActResult(success=False, message="no open tabs")
            idx = plan.index if plan.index is not None else -1
            if not -len(pages) <= idx < len(pages):
                idx = -1
            handle.page = pages[idx]
            handle.page.bring_to_front()
            return ActResult(success=True, message=f"switched to tab {idx}: {handle.page.url}")

        if plan.action == "close_tab":
            pages = handle.context.pages
            if len(pages) <= 1:
                return ActResult(success=False, message="refusing to close the last tab")
            page.close()
            handle.page = handle.context.pages[-1]
            handle.page.bring_to_front()
            return ActResult(success=True, message=f"closed tab; now on {handle.page.url}")

        if plan.index is None:
            return ActResult(success=False, message=f"{plan.action} needs an element index")
        target = page.locator(f'[{INDEX_ATTR}="{plan.index}"]').first

        if plan.action == "click":
            target.click(timeout=timeout)
        elif plan.action == "fill":
            target.fill(plan.value or "", timeout=timeout)
        elif plan.action == "fill_and_submit":
            target.fill(plan.value or "", timeout=timeout)
            target.press("Enter", timeout=timeout)
        elif plan.action == "select":
            target.select_option(label=plan.value or "", timeout=timeout)
        return ActResult(success=True, message=f"{plan.action} #{plan.index}: {plan.reason}".strip())


def _safe_title(page: Any) -> str:
    try:
        return page.title()
    except PlaywrightError:
        return ""
