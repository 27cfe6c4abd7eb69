"""Thread-safe categorized record store with a total-seen counter."""

import threading

from canary.models import Category, Record, StoreState
from canary.pagination import DEFAULT_PAGE_SIZE, Page, paginate


class CategorizedStore:
    """In-memory canonical state: one append-only list per category.

    Every mutation bumps ``version`` so a flusher can tell whether anything
    changed since the last save.
    """

    def __init__(self, state: StoreState | None = None, page_size: int = DEFAULT_PAGE_SIZE):
        state = state or StoreState()
        self._lock = threading.Lock()
        self._page_size = page_size
        self._records = {category: list(state.records.get(category, [])) for category in Category}
        self._total_seen = state.total_messages
        self._version = 0

    def record_seen(self):
        """Count one observed line or error event."""
        with self._lock:
            self._total_seen += 1
            self._version += 1

    def append(self, record: Record):
        """Append a record to its category's list."""
        with self._lock:
            self._records[record.category].append(record)
            self._version += 1

    def read(self, category: Category, from_: int | None = None, page_size: int | None = None) -> Page:
        """Return one page of ``category``, newest end first."""
        with self._lock:
            return paginate(self._records[Category(category)], from_, page_size or self._page_size)

    def replace_all(self, state: StoreState):
        """Swap in a whole new state; readers see either the old or the new one."""
        records = {category: list(state.records.get(category, [])) for category in Category}
        with self._lock:
            self._records = records
            self._total_seen = state.total_messages
            self._version += 1

    def snapshot(self) -> StoreState:
        """Consistent copy of the current state."""
        return self.snapshot_with_version()[0]

    def snapshot_with_version(self) -> tuple[StoreState, int]:
        """Copy of the current state together with the version it was taken at."""
        with self._lock:
            state = StoreState(
                total_messages=self._total_seen,
                records={category: list(records) for category, records in self._records.items()},
            )
            return state, self._version

    def counts(self) -> dict[Category, int]:
        with self._lock:
            return {category: len(records) for category, records in self._records.items()}

    @property
    def total_seen(self) -> int:
        return self._total_seen

    @property
    def version(self) -> int:
        return self._version
