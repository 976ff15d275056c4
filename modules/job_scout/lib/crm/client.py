from __future__ import annotations

import base64
from dataclasses import replace
from typing import Any
from urllib.parse import quote

import requests

from ..http_client import HttpClient, decode_json
from ..models import CrmBox, CrmBoxRequest, CrmPipeline

STREAK_API_BASE = "https://www.streak.com/api/v2"


class CrmError(RuntimeError):
    """Base exception for CRM failures (transport or API)."""


class CrmApiError(CrmError):
    """Non-2xx response from the CRM. `body` is the raw response text."""

    def __init__(self, status_code: int, body: str, *, op: str = ""):
        self.status_code = int(status_code)
        self.body = body or ""
        self.op = op
        where = f"{op} " if op else ""
        super().__init__(f"Streak {where}failed ({self.status_code}): {self.body[:500]}")


def build_auth_header(api_key: str) -> str:
    """Basic auth with the API key as username and an empty password."""
    token = base64.b64encode(f"{api_key}:".encode()).decode("ascii")
    return f"Basic {token}"


class StreakClient:
    """
    Minimal Streak pipeline/box client.

    Calls are never retried: box creation is not idempotent on the server side,
    so a blind retry could create duplicate boxes.
    """

    def __init__(self, api_key: str, *, base_url: str = STREAK_API_BASE, timeout: float = 30.0):
        if not api_key:
            raise ValueError("StreakClient requires an api_key")
        self._http = HttpClient(
            base_url,
            headers={"Authorization": build_auth_header(api_key)},
            timeout=timeout,
            retry_methods=(),
        )

    # ---- pipelines ----
    def list_pipelines(self) -> list[CrmPipeline]:
        data = self._call("GET", "pipelines", op="list_pipelines")
        return [CrmPipeline.from_api(p) for p in data or [] if isinstance(p, dict)]

    def get_pipeline(self, pipeline_key: str) -> CrmPipeline:
        data = self._call("GET", f"pipelines/{quote(pipeline_key, safe='')}", op="get_pipeline")
        return CrmPipeline.from_api(data or {})

    # ---- boxes ----
    def list_boxes(self, pipeline_key: str) -> list[CrmBox]:
        data = self._call("GET", f"pipelines/{quote(pipeline_key, safe='')}/boxes", op="list_boxes")
        return [CrmBox.from_api(b) for b in data or [] if isinstance(b, dict)]

    def create_box(self, request: CrmBoxRequest) -> CrmBox:
        """Create a box with its field values inline in the same request."""
        data = self._call(
            "POST",
            f"pipelines/{quote(request.pipeline_key, safe='')}/boxes",
            json_body=request.payload(),
            op="create_box",
        )
        box = CrmBox.from_api(data or {})
        if not box.pipeline_key:
            box = replace(box, pipeline_key=request.pipeline_key)
        return box

    def close(self) -> None:
        self._http.close()

    # ---- internals ----
    def _call(self, method: str, path: str, *, json_body: Any = None, op: str) -> Any:
        try:
            resp = self._http.request(method, path, json_body=json_body)
        except requests.RequestException as e:
            raise CrmError(f"Streak {op} transport error: {e!r}") from e
        if not 200 <= resp.status_code < 300:
            raise CrmApiError(resp.status_code, resp.text, op=op)
        if not resp.content:
            return None
        try:
            return decode_json(resp)
        except ValueError as e:
            raise CrmError(str(e)) from e
