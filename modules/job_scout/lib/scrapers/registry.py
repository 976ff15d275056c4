from __future__ import annotations

from ..models import JobSource
from .base import BaseScraper

# In-process registry: board -> scraper class
_REGISTRY: dict[JobSource, type[BaseScraper]] = {}


def register(cls: type[BaseScraper]) -> type[BaseScraper]:
    """
    Class decorator to register a scraper class under its `source`.
    Requires cls.source to be a scrapeable JobSource.
    """
    source = getattr(cls, "source", None)
    if not isinstance(source, JobSource) or source is JobSource.UNKNOWN:
        raise ValueError(f"Cannot register scraper {cls!r}: missing/unknown 'source'.")
    if source in _REGISTRY and _REGISTRY[source] is not cls:
        # Allow idempotent re-registers of the same class; otherwise reject.
        raise ValueError(f"Scraper for {source.value!r} already registered to {_REGISTRY[source]!r}.")
    _REGISTRY[source] = cls
    return cls


def get(source: JobSource | str) -> type[BaseScraper]:
    """
    Look up a scraper class by board (enum or its string value).
    Raises KeyError if none is registered.
    """
    key = JobSource.parse(source)
    if key not in _REGISTRY:
        raise KeyError(f"No scraper registered for source {source!r}.")
    return _REGISTRY[key]


def all_sources() -> dict[JobSource, type[BaseScraper]]:
    """
    Return a shallow copy of the registry (useful for debugging/tests).
    """
    return dict(_REGISTRY)
