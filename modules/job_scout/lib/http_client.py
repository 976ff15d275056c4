# job_scout/http_client.py
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

LOG = logging.getLogger(__name__)


class HttpClient:
    """
    Shared JSON-over-HTTP client for provider APIs (Browserbase, Streak).

    Responses are returned as-is (no raise_for_status) so each provider client
    can map non-2xx statuses onto its own error type. Retries only apply to the
    methods listed in `retry_methods`; pass an empty tuple to disable them.
    """

    def __init__(
        self,
        base_url: str,
        *,
        headers: Mapping[str, str] | None = None,
        timeout: float = 30.0,
        retry_methods: Iterable[str] = ("GET",),
        user_agent: str = "JobScout/1.0 (+https://example.invalid)",
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = float(timeout)
        self.session = requests.Session()
        self.session.headers.update({
            "User-Agent": user_agent,
            "Accept": "application/json",
        })
        if headers:
            self.session.headers.update(dict(headers))

        methods = frozenset(m.upper() for m in retry_methods)
        retry = Retry(
            total=3 if methods else 0,
            backoff_factor=0.5,
            status_forcelist=(429, 502, 503, 504),
            allowed_methods=methods,
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry, pool_connections=4, pool_maxsize=8)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    # ---- convenience ----
    def request(
        self,
        method: str,
        path: str,
        *,
        json_body: Any = None,
        params: Mapping[str, Any] | None = None,
        timeout: float | None = None,
    ) -> requests.Response:
        """Issue one request; network errors propagate as requests.RequestException."""
        url = self.url(path)
        LOG.debug("%s %s", method.upper(), url)
        return self.session.request(
            method.upper(),
            url,
            json=json_body,
            params=params,
            timeout=timeout or self.timeout,
        )

    def close(self) -> None:
        try:
            self.session.close()
        except Exception:
            LOG.debug("HttpClient.close() swallow", exc_info=True)


def decode_json(resp: requests.Response) -> Any:
    """Parse a JSON body, raising ValueError with a short preview when it is not JSON."""
    try:
        return resp.json()
    except ValueError as e:
        preview = (resp.text or "")[:200].replace("\n", " ")
        raise ValueError(f"JSON decode failed for {resp.url!r}; body starts: {preview!r}") from e
