from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

log = logging.getLogger(__name__)


class LlmError(RuntimeError):
    """The model call failed or did not return a JSON object."""


@dataclass
class OpenAIJsonChat:
    """
    Thin facade over openai.chat.completions in JSON mode.

    Credentials and model come from Settings (no env lookups here). The client
    is created lazily so importing this module never needs the openai package.
    """

    api_key: str
    model: str = "gpt-4.1-mini"
    temperature: float = 0.0
    timeout: float = 60.0
    _client: Any = field(default=None, init=False, repr=False)

    def _get_client(self) -> Any:
        if self._client is None:
            from openai import OpenAI  # local import to keep tests light

            if not self.api_key:
                raise LlmError("OPENAI_API_KEY not set")
            self._client = OpenAI(api_key=self.api_key, timeout=self.timeout)
        return self._client

    def complete_json(self, system_msg: str, user_msg: str) -> dict[str, Any]:
        """Return the assistant reply parsed as a JSON object."""
        client = self._get_client()
        log.debug("OpenAIJsonChat.complete_json(model=%r, %d chars)", self.model, len(user_msg))
        try:
            resp = client.chat.completions.create(
                model=self.model,
                temperature=self.temperature,
                messages=[
                    {"role": "system", "content": system_msg},
                    {"role": "user", "content": user_msg},
                ],
                response_format={"type": "json_object"},
            )
        except Exception as e:  # openai raises many error types; all mean "no answer"
            raise LlmError(f"chat completion failed: {e!r}") from e

        content = (resp.choices[0].message.content or "").strip()
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise LlmError(f"model reply is not JSON: {content[:200]!r}") from e
        if not isinstance(data, dict):
            raise LlmError(f"model reply is not a JSON object: {type(data).__name__}")
        return data
