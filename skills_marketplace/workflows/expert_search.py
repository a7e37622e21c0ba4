"""
Expert search and filtering.

Holds a free-text query, a sparse filter record and the candidate list,
and derives the filtered view whenever any of them changes. Candidates
may be replaced at any time from a document store subscription; the
most recent snapshot wins.
"""

import logging
from dataclasses import dataclass, fields, replace
from typing import Optional

from ..models.expert_profile import Availability, SMEProfile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchFilters:
    """Optional search filters; None means the filter is not applied."""
    role: Optional[str] = None
    sector: Optional[str] = None
    location: Optional[str] = None
    availability: Optional[str] = None
    specialization: Optional[str] = None

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Availability):
                value = value.value
            object.__setattr__(self, f.name, value or None)

    @property
    def active(self) -> dict:
        """Only the filters that are set."""
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name)}

    def __bool__(self) -> bool:
        return bool(self.active)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "SearchFilters":
        data = data or {}
        return cls(**{f.name: data.get(f.name) for f in fields(cls)})

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def _contains(haystack: str, needle: str) -> bool:
    return needle.lower() in (haystack or "").lower()


def matches(profile: SMEProfile, query: str = "", filters: Optional[SearchFilters] = None) -> bool:
    """True if ``profile`` satisfies the query and every active filter."""
    filters = filters or SearchFilters()

    if query:
        if not (
            _contains(profile.name, query)
            or any(_contains(s, query) for s in profile.specializations)
            or any(_contains(r, query) for r in profile.roles)
        ):
            return False

    if filters.role and not any(_contains(r, filters.role) for r in profile.roles):
        return False
    if filters.sector and filters.sector not in profile.sectors:
        return False
    if filters.location and profile.location != filters.location:
        return False
    if filters.availability and profile.availability.value != filters.availability:
        return False
    if filters.specialization and not any(
        _contains(s, filters.specialization) for s in profile.specializations
    ):
        return False
    return True


class ExpertSearch:
    """
    Search state for one search page.

    ``results`` is always the candidates matching the current query and
    filters, in candidate order.
    """

    def __init__(self, candidates=()):
        self._query = ""
        self._filters = SearchFilters()
        self._candidates: tuple[SMEProfile, ...] = tuple(candidates)
        self._results: tuple[SMEProfile, ...] = self._candidates
        self._subscription = None
        self._recompute()

    @property
    def query(self) -> str:
        return self._query

    @property
    def filters(self) -> SearchFilters:
        return self._filters

    @property
    def candidates(self) -> list[SMEProfile]:
        return list(self._candidates)

    @property
    def results(self) -> list[SMEProfile]:
        return list(self._results)

    def set_query(self, query: str) -> list[SMEProfile]:
        self._query = query or ""
        return self._recompute()

    def set_filters(self, filters=None) -> list[SMEProfile]:
        """Replace all filters (a ``SearchFilters`` or a mapping)."""
        if not isinstance(filters, SearchFilters):
            filters = SearchFilters.from_dict(filters)
        self._filters = filters
        return self._recompute()

    def set_filter(self, name: str, value) -> list[SMEProfile]:
        """Set or unset (``None``/``""``) a single filter."""
        if name not in {f.name for f in fields(SearchFilters)}:
            raise KeyError(f"Unknown filter: {name}")
        self._filters = replace(self._filters, **{name: value})
        return self._recompute()

    def set_candidates(self, candidates) -> list[SMEProfile]:
        self._candidates = tuple(candidates)
        return self._recompute()

    def clear(self) -> list[SMEProfile]:
        """Reset the query and every filter in one update."""
        self._query = ""
        self._filters = SearchFilters()
        return self._recompute()

    # --- Live candidates ---

    def follow(self, subscription) -> None:
        """Take candidates from a document store subscription."""
        if self._subscription is not None:
            self._subscription.close()
        self._subscription = subscription
        self.sync()

    def sync(self) -> bool:
        """
        Apply the newest pending snapshot, if any.

        Returns True if the candidate list changed.
        """
        if self._subscription is None or self._subscription.closed:
            return False
        snapshot = self._subscription.latest()
        if snapshot is None:
            return False

        candidates = tuple(
            SMEProfile.from_dict(doc.get("profile") or {}, doc.get("id"))
            for doc in snapshot
        )
        if candidates == self._candidates:
            return False
        self.set_candidates(candidates)
        return True

    def close(self) -> None:
        """Stop following the subscription."""
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None

    def __enter__(self) -> "ExpertSearch":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _recompute(self) -> list[SMEProfile]:
        self._results = tuple(
            p for p in self._candidates if matches(p, self._query, self._filters)
        )
        logger.debug(
            "Search %r %s: %d of %d candidates",
            self._query, self._filters.active, len(self._results), len(self._candidates),
        )
        return list(self._results)
