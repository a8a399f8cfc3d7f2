"""Shared machinery for tenant-scoped optimistic caches.

A store keeps an immutable tuple of records. A mutation installs a new tuple
before calling the backing service and puts the old tuple back if the call
fails, so rollback never has to undo field edits.
"""

import itertools
import time
from typing import Callable, Dict, Generic, Optional, Sequence, Tuple, TypeVar
from errors import RemoteFailureError
from logger import get_logger

logger = get_logger("store")

T = TypeVar("T")

# Provisional IDs for records created optimistically; real IDs are positive
_provisional_ids = itertools.count(-1, -1)


def provisional_id() -> int:
    return next(_provisional_ids)


class OptimisticCache(Generic[T]):
    """Cache of one company's records of a single kind.

    Subclasses define ``table`` (the change feed table they follow),
    ``_fetch`` and ``_sort_key``.

    Args:
        company_id: Company the cache belongs to.
        changes: Optional ChangeFeed to follow.
        highlight_seconds: How long a "recently changed" marker lasts.
        clock: Monotonic clock, injectable for tests.
    """

    table = ""

    def __init__(
        self,
        company_id: int,
        changes=None,
        highlight_seconds: float = 3.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.company_id = company_id
        self.changes = changes
        self.highlight_seconds = highlight_seconds
        self.clock = clock
        self.error: Optional[str] = None
        self.last_highlighted_id: Optional[int] = None
        self._records: Tuple[T, ...] = ()
        self._highlights: Dict[int, float] = {}
        self._subscription = None

    # -- reading -----------------------------------------------------------

    def all(self) -> list:
        """All cached records in presentation order."""
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def _fetch(self) -> Sequence[T]:
        raise NotImplementedError

    def _sort_key(self, record: T):
        raise NotImplementedError

    # -- refetch and subscription -------------------------------------------

    def refresh(self) -> None:
        """Replace the whole cache with the backing store's current rows.

        Raises:
            RemoteFailureError: If the fetch fails; the cache is unchanged.
        """
        try:
            records = self._fetch()
        except RemoteFailureError as e:
            self.error = str(e)
            logger.error(f"Refreshing {self.table} for company {self.company_id} failed: {e}")
            raise
        self._install(records)
        self.error = None
        logger.debug(f"Refreshed {len(records)} {self.table} for company {self.company_id}")

    def subscribe(self) -> None:
        """Refetch whenever the change feed reports a change to this table."""
        if self.changes is None or self._subscription is not None:
            return
        self._subscription = self.changes.subscribe(self.company_id, self._on_change)

    def close(self) -> None:
        """Drop the change subscription."""
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def _on_change(self, event) -> None:
        if event.table == self.table:
            # Last refetch wins, even over an unacknowledged optimistic change
            try:
                self.refresh()
            except RemoteFailureError:
                # Kept on self.error; the next refresh retries
                return

    # -- highlighting ------------------------------------------------------

    def highlight(self, record_id: int) -> None:
        """Mark a record as recently changed until the highlight interval passes."""
        self._highlights[record_id] = self.clock() + self.highlight_seconds
        self.last_highlighted_id = record_id

    def is_highlighted(self, record_id: int) -> bool:
        return record_id in self.highlighted_ids

    @property
    def highlighted_ids(self) -> frozenset:
        """IDs whose highlight has not yet expired."""
        now = self.clock()
        expired = [rid for rid, until in self._highlights.items() if until <= now]
        for rid in expired:
            del self._highlights[rid]
        if self.last_highlighted_id in expired:
            self.last_highlighted_id = None
        return frozenset(self._highlights)

    # -- mutation plumbing -------------------------------------------------

    def _install(self, records: Sequence[T]) -> None:
        self._records = tuple(sorted(records, key=self._sort_key))

    def _apply(self, records: Sequence[T], call: Callable, highlight_id=None):
        """Install records optimistically, then make the remote call.

        Args:
            records: The cache contents as they should be after the call.
            call: Zero-argument callable performing the remote write.
            highlight_id: Record to highlight immediately.

        Returns:
            Whatever call returned.

        Raises:
            RemoteFailureError: If call fails; the cache is restored first.
        """
        snapshot = self._records
        self._install(records)
        if highlight_id is not None:
            self.highlight(highlight_id)
        try:
            result = call()
        except RemoteFailureError as e:
            self._records = snapshot
            if highlight_id is not None:
                self._highlights.pop(highlight_id, None)
            self.error = str(e)
            logger.error(f"Rolled back {self.table} change for company {self.company_id}: {e}")
            raise
        self.error = None
        return result

    def _replace(self, remove_ids, add: Sequence[T]) -> None:
        """Swap records in the cache after a successful call."""
        remove = set(remove_ids) | {record.id for record in add}
        self._install([r for r in self._records if r.id not in remove] + list(add))
