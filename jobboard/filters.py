"""
Job listing filter state.

The filter set is mirrored into the URL query string so any listing is
bookmarkable: to_query() drops empty and default values, from_query() reads
them back with the same defaults.
"""

from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Mapping

DEFAULT_SORT = "newest"
SORT_OPTIONS = {
    "newest": "Newest First",
    "oldest": "Oldest First",
    "salary-high": "Salary: High to Low",
    "salary-low": "Salary: Low to High",
}

# Changing only these keeps the current position in the result set
POSITION_FIELDS = {"page", "sort"}


@dataclass(frozen=True)
class JobFilters:
    """Filter set for GET /jobs. Field names match the query parameters."""

    q: str = ""
    category: str = ""
    level: str = ""
    location: str = ""
    min: str = ""
    max: str = ""
    page: int = 1
    sort: str = DEFAULT_SORT

    @classmethod
    def from_query(cls, args: Mapping[str, Any]) -> "JobFilters":
        """Parse URL query parameters; invalid page -> 1, unknown sort -> newest."""
        values: Dict[str, Any] = {}
        for f in fields(cls):
            if f.name in POSITION_FIELDS:
                continue
            values[f.name] = str(args.get(f.name, "") or "").strip()

        try:
            page = int(args.get("page", 1) or 1)
        except (TypeError, ValueError):
            page = 1
        values["page"] = max(1, page)

        sort = str(args.get("sort", "") or "").strip()
        values["sort"] = sort if sort in SORT_OPTIONS else DEFAULT_SORT
        return cls(**values)

    def to_query(self) -> Dict[str, str]:
        """Serialize to query parameters, omitting empty and default values."""
        params: Dict[str, str] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value in ("", None, f.default):
                continue
            params[f.name] = str(value)
        return params

    def update(self, **changes: Any) -> "JobFilters":
        """
        Apply field changes.

        Any change to a filter field sends the listing back to page 1; a change
        that only touches page and/or sort keeps everything else as it is.
        """
        unknown = set(changes) - {f.name for f in fields(self)}
        if unknown:
            raise TypeError(f"Unknown filter fields: {', '.join(sorted(unknown))}")

        changed = {k for k, v in changes.items() if getattr(self, k) != v}
        if changed - POSITION_FIELDS:
            changes["page"] = 1
        return replace(self, **changes)

    def with_page(self, page: int) -> "JobFilters":
        return self.update(page=max(1, int(page)))

    def with_sort(self, sort: str) -> "JobFilters":
        return self.update(sort=sort if sort in SORT_OPTIONS else DEFAULT_SORT)

    def cleared(self) -> "JobFilters":
        return JobFilters()

    @property
    def has_active_filters(self) -> bool:
        return any(
            getattr(self, f.name) for f in fields(self) if f.name not in POSITION_FIELDS
        )
