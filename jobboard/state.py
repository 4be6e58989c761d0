"""
Per-viewer view state.

Dashboards keep a local copy of the collections they display and patch it
after each row action instead of refetching. KeyedCollection is that local
copy for one entity kind; EntityStores groups one per kind so every view of a
viewer shares them. ViewStateRegistry keeps EntityStores between requests,
keyed by a view-state id stored in the Flask session.

RequestSequencer tags outgoing listing requests so a slow, superseded
response is dropped instead of overwriting a newer one.
"""

import logging
import threading
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Callable, Dict, Generic, Iterable, Iterator, List, Optional, TypeVar

from .filters import JobFilters
from .models import Application, Company, JobPosting, SavedJob, UserAccount

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_VIEWERS = 500
# Open listing pages remembered per viewer (one per browser tab)
MAX_LISTING_VIEWS = 20


def _record_key(item) -> str:
    return item.id


class KeyedCollection(Generic[T]):
    """
    Ordered collection of records keyed by id.

    New records are prepended (newest first); known records are replaced in
    place so row order stays stable.
    """

    def __init__(self, items: Iterable[T] = (), key: Callable[[T], str] = _record_key):
        self._key = key
        self._items: List[T] = []
        self.replace_all(items)

    def replace_all(self, items: Iterable[T]) -> None:
        self._items = []
        seen = set()
        for item in items:
            k = self._key(item)
            if k in seen:
                continue
            seen.add(k)
            self._items.append(item)

    def upsert(self, item: T) -> bool:
        """Insert or replace. Returns True if the record was new."""
        k = self._key(item)
        for i, existing in enumerate(self._items):
            if self._key(existing) == k:
                self._items[i] = item
                return False
        self._items.insert(0, item)
        return True

    def remove(self, key: str) -> Optional[T]:
        for i, existing in enumerate(self._items):
            if self._key(existing) == key:
                return self._items.pop(i)
        return None

    def remove_where(self, predicate: Callable[[T], bool]) -> List[T]:
        removed = [item for item in self._items if predicate(item)]
        if removed:
            self._items = [item for item in self._items if not predicate(item)]
        return removed

    def get(self, key: str) -> Optional[T]:
        for item in self._items:
            if self._key(item) == key:
                return item
        return None

    def index_by(self, fn: Callable[[T], Optional[str]]) -> Dict[str, T]:
        """Map fn(item) -> item, skipping items where fn returns None."""
        index: Dict[str, T] = {}
        for item in self._items:
            k = fn(item)
            if k is not None:
                index.setdefault(k, item)
        return index

    def keys(self) -> List[str]:
        return [self._key(item) for item in self._items]

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, key: object) -> bool:
        return any(self._key(item) == key for item in self._items)


class RequestSequencer:
    """
    Monotonic request tags for one view.

    Usage:
        tag = sequencer.issue()
        page = client.list_jobs(...)
        if sequencer.is_current(tag):
            show(page)
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._latest = 0

    def issue(self) -> int:
        with self._lock:
            self._latest += 1
            return self._latest

    def is_current(self, tag: int) -> bool:
        with self._lock:
            return tag == self._latest

    @property
    def latest(self) -> int:
        return self._latest


@dataclass
class ListingView:
    """Request sequencing and the last filter set shown for one open listing page."""

    sequencer: RequestSequencer = field(default_factory=RequestSequencer)
    filters: Optional[JobFilters] = None


@dataclass
class EntityStores:
    """One keyed collection per entity kind, shared by every view of a viewer."""

    jobs: KeyedCollection[JobPosting] = field(default_factory=KeyedCollection)
    companies: KeyedCollection[Company] = field(default_factory=KeyedCollection)
    users: KeyedCollection[UserAccount] = field(default_factory=KeyedCollection)
    applications: KeyedCollection[Application] = field(default_factory=KeyedCollection)
    saved: KeyedCollection[SavedJob] = field(default_factory=KeyedCollection)
    # Listing pages by the id rendered into their filter form
    listings: "OrderedDict[str, ListingView]" = field(default_factory=OrderedDict)
    # Signed-in user's own account, as last loaded by the profile view
    profile: Optional[UserAccount] = None
    _listings_lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def listing_view(self, listing_id: str) -> ListingView:
        """Return the listing view for listing_id, creating it on first use."""
        with self._listings_lock:
            view = self.listings.get(listing_id)
            if view is None:
                view = ListingView()
                self.listings[listing_id] = view
                while len(self.listings) > MAX_LISTING_VIEWS:
                    self.listings.popitem(last=False)
            else:
                self.listings.move_to_end(listing_id)
            return view


class ViewStateRegistry:
    """
    Bounded in-process map of view-state id -> EntityStores.

    Least recently used entries are evicted past max_viewers; an evicted
    viewer simply starts from fresh stores on the next page load.
    """

    def __init__(self, max_viewers: int = DEFAULT_MAX_VIEWERS):
        self.max_viewers = max_viewers
        self._lock = threading.Lock()
        self._states: "OrderedDict[str, EntityStores]" = OrderedDict()

    @staticmethod
    def new_id() -> str:
        return uuid.uuid4().hex

    def get(self, state_id: str) -> EntityStores:
        """Return the stores for state_id, creating them on first use."""
        with self._lock:
            stores = self._states.get(state_id)
            if stores is None:
                stores = EntityStores()
                self._states[state_id] = stores
                while len(self._states) > self.max_viewers:
                    evicted, _ = self._states.popitem(last=False)
                    logger.debug(f"Evicted view state {evicted[:8]}")
            else:
                self._states.move_to_end(state_id)
            return stores

    def drop(self, state_id: str) -> None:
        with self._lock:
            self._states.pop(state_id, None)

    def __len__(self) -> int:
        return len(self._states)
