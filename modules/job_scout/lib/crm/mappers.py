"""
Posting -> Streak box mapping.

Dropdown/tag fields in a Streak pipeline take option ids, not free text, so
location and source go through a controlled vocabulary. The tables are data
(vocabulary.default.json, or STREAK_VOCABULARY_PATH), not code.
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from ..models import CrmBoxRequest, CrmFieldKeyMap, JobPosting

DEFAULT_VOCABULARY_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "vocabulary.default.json")


class VocabularyError(ValueError):
    """Raised when a vocabulary file is missing or malformed."""


@dataclass(frozen=True)
class VocabularyTable:
    """Case-insensitive free text -> option id, with a fallback option."""

    fallback: str
    entries: Mapping[str, str] = field(default_factory=dict)

    def resolve(self, value: str | None) -> str:
        key = (value or "").strip().lower()
        return self.entries.get(key, self.fallback)


@dataclass(frozen=True)
class CrmVocabulary:
    location: VocabularyTable
    source: VocabularyTable


def load_vocabulary(path: str | None = None) -> CrmVocabulary:
    """
    Load vocabulary tables from JSON:

        {"location": {"fallback": "...", "entries": {"remote": "9007", ...}},
         "source":   {"fallback": "...", "entries": {"hiringcafe": "9011", ...}}}

    Entry keys are matched case-insensitively.
    """
    resolved = path or DEFAULT_VOCABULARY_PATH
    try:
        with open(resolved, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise VocabularyError(f"vocabulary file not found: {resolved}") from e
    except json.JSONDecodeError as e:
        raise VocabularyError(f"vocabulary file is invalid JSON: {resolved}") from e

    if not isinstance(data, dict):
        raise VocabularyError(f"vocabulary file must hold an object: {resolved}")
    return CrmVocabulary(
        location=_parse_table(data, "location", resolved),
        source=_parse_table(data, "source", resolved),
    )


def _parse_table(data: dict[str, Any], name: str, path: str) -> VocabularyTable:
    raw = data.get(name)
    if not isinstance(raw, dict):
        raise VocabularyError(f"{path}: '{name}' must be an object")
    fallback = raw.get("fallback")
    if not isinstance(fallback, str) or not fallback.strip():
        raise VocabularyError(f"{path}: '{name}.fallback' must be a non-empty string")
    entries = raw.get("entries") or {}
    if not isinstance(entries, dict):
        raise VocabularyError(f"{path}: '{name}.entries' must be an object")
    return VocabularyTable(
        fallback=fallback.strip(),
        entries={str(k).strip().lower(): str(v) for k, v in entries.items()},
    )


def build_request(
    posting: JobPosting,
    pipeline_key: str,
    field_keys: CrmFieldKeyMap | None = None,
    default_stage_key: str | None = None,
    vocabulary: CrmVocabulary | None = None,
) -> CrmBoxRequest:
    """
    Translate a posting into a box create-request.

    Only field keys configured in `field_keys` are emitted; an unmapped source or
    location resolves to the vocabulary's fallback option, never an error.
    """
    keys = field_keys or CrmFieldKeyMap()
    vocab = vocabulary or load_vocabulary()

    fields: dict[str, Any] = {}
    if keys.job_title:
        fields[keys.job_title] = posting.title
    if keys.source:
        fields[keys.source] = vocab.source.resolve(posting.source.value)
    if keys.location:
        fields[keys.location] = vocab.location.resolve(posting.location)
    if keys.website:
        fields[keys.website] = posting.url

    return CrmBoxRequest(
        name=posting.company or posting.title,
        pipeline_key=pipeline_key,
        stage_key=default_stage_key or None,
        notes=posting.description or None,
        fields=fields,
    )
