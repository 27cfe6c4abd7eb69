"""Periodic persistence of the categorized store."""

import json
import logging
import threading

from canary.models import Record, StoreState
from canary.store import CategorizedStore

logger = logging.getLogger(__name__)


def _first_unencodable(state: StoreState) -> Record | None:
    for record in state.all_records():
        try:
            json.dumps(record.to_dict())
        except (TypeError, ValueError):
            return record
    return None


class StoreFlusher:
    """Writes store snapshots through a backend when the store has changed.

    A failed save is logged and the state stays dirty, so the next tick
    retries it. A record whose payload cannot be encoded as JSON is named in
    the log.
    """

    def __init__(self, store: CategorizedStore, backend):
        self._store = store
        self._backend = backend
        self._lock = threading.Lock()
        self._saved_version = store.version
        self._flush_count = 0

    @property
    def dirty(self) -> bool:
        return self._store.version != self._saved_version

    @property
    def flush_count(self) -> int:
        return self._flush_count

    def flush(self, force: bool = False) -> bool:
        """Save the current snapshot. Returns True if a save happened."""
        with self._lock:
            state, version = self._store.snapshot_with_version()
            if not force and version == self._saved_version:
                return False
            try:
                self._backend.save(state)
            except OSError:
                logger.exception("Failed to save store, will retry on next flush")
                return False
            except (TypeError, ValueError):
                record = _first_unencodable(state)
                if record is not None:
                    logger.exception(
                        "Store cannot be encoded: %s record from room %r at %s has a non-JSON payload: %r",
                        record.category.value, record.room, record.timestamp, record.raw_message,
                    )
                else:
                    logger.exception("Store cannot be encoded")
                return False
            self._saved_version = version
            self._flush_count += 1

        logger.debug("Flushed store at version %d (%d seen)", version, state.total_messages)
        return True

    def schedule(self, scheduler, interval_seconds: float):
        """Register the flush as an interval job on an APScheduler scheduler."""
        return scheduler.add_job(
            self.flush,
            "interval",
            seconds=interval_seconds,
            id="store-flush",
            max_instances=1,
            coalesce=True,
        )
