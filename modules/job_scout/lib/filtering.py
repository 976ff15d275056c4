from __future__ import annotations

from collections.abc import Iterable

from .models import REMOTE_LOCATION, JobPosting, SearchCriteria


def matches(posting: JobPosting, criteria: SearchCriteria) -> bool:
    """True iff every predicate supplied in `criteria` passes for `posting`."""
    if criteria.keywords:
        haystack = " ".join([posting.title, posting.description or "", *posting.tags]).lower()
        if not any(k.lower() in haystack for k in criteria.keywords):
            return False

    if criteria.remote_only and posting.location != REMOTE_LOCATION:
        return False

    if criteria.location:
        wanted = criteria.location.strip().lower()
        remote = REMOTE_LOCATION.lower()
        # Remote postings satisfy any location preference.
        if wanted != remote and posting.location.lower() != remote and wanted not in posting.location.lower():
            return False

    # No salary data on the posting is not a failure.
    if criteria.minimum_salary_usd is not None and posting.salary_usd_min is not None:
        if posting.salary_usd_min < criteria.minimum_salary_usd:
            return False

    return True


def filter_postings(postings: Iterable[JobPosting], criteria: SearchCriteria) -> list[JobPosting]:
    """Pure, order-preserving filter."""
    return [p for p in postings if matches(p, criteria)]
