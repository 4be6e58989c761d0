"""
Job listing view: one list request per filter change, latest request wins.
"""

import logging
from dataclasses import dataclass, field, fields
from typing import Any, Mapping, Optional

from .api_client import BackendClient
from .errors import ApiError
from .filters import POSITION_FIELDS, JobFilters
from .models import JobPage
from .notifications import Notifier
from .state import RequestSequencer

logger = logging.getLogger(__name__)

FILTER_FIELDS = frozenset(f.name for f in fields(JobFilters))


def next_filters(
    previous: Optional[JobFilters], args: Mapping[str, Any], changed: Optional[str] = None
) -> JobFilters:
    """
    Filter set for a listing request.

    The filter form always posts its full state, current page included, and
    names the control that fired in ``changed``; pagination links send
    ``changed=page``. A changed filter field goes back to page 1, a page or
    sort change keeps the rest. Requests without a marker are diffed against
    the previous filter set instead.
    """
    requested = JobFilters.from_query(args)
    if changed in FILTER_FIELDS:
        if changed in POSITION_FIELDS:
            return requested
        return requested.with_page(1)
    if previous is None:
        return requested
    return previous.update(**{f.name: getattr(requested, f.name) for f in fields(requested)})


@dataclass
class ListingResult:
    """Outcome of one listing fetch."""

    filters: JobFilters
    page: JobPage = field(default_factory=JobPage)
    tag: int = 0
    stale: bool = False
    failed: bool = False


class JobListing:
    """
    Fetches result pages for a filter set.

    Each fetch is tagged by the sequencer; a response whose tag is no longer
    the latest comes back marked stale and must not replace what is shown.
    """

    def __init__(self, client: BackendClient, sequencer: RequestSequencer, notifier: Notifier):
        self.client = client
        self.sequencer = sequencer
        self.notifier = notifier

    def fetch(self, filters: JobFilters, tag: Optional[int] = None) -> ListingResult:
        if tag is None:
            tag = self.sequencer.issue()
        result = ListingResult(filters=filters, tag=tag)

        try:
            result.page = self.client.list_jobs(filters.to_query())
        except ApiError as e:
            result.failed = True
            if self.sequencer.is_current(tag):
                self.notifier.error(e.message)

        if not self.sequencer.is_current(tag):
            logger.info(f"Discarding stale listing response #{tag} (latest #{self.sequencer.latest})")
            result.stale = True
        return result
