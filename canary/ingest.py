"""Single-consumer ingestion loop: classify each event and file it in the store."""

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from typing import Union

from canary.classifier import classify, classify_transport_error
from canary.codec import Codec
from canary.models import Record
from canary.store import CategorizedStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RawLine:
    room: str
    raw_message: str


@dataclass(frozen=True)
class TransportError:
    room: str
    raw_message: str
    errors: list[str] = field(default_factory=list)


Event = Union[RawLine, TransportError]


class IngestLoop:
    """Consumes events from one bounded queue, strictly in arrival order.

    Producers call :meth:`submit`; a single thread running :meth:`run`
    classifies and appends each event before taking the next one.
    """

    def __init__(
        self,
        store: CategorizedStore,
        codec: Codec,
        shutdown_event: threading.Event,
        queue_size: int = 10000,
        enqueue_timeout: float = 5.0,
        clock=None,
    ):
        self._store = store
        self._codec = codec
        self._shutdown = shutdown_event
        self._queue: queue.Queue = queue.Queue(maxsize=queue_size)
        self._enqueue_timeout = enqueue_timeout
        self._clock = clock or time.time
        self._last_timestamp = 0
        self._thread: threading.Thread | None = None
        self._dropped = 0
        self._codec_errors = 0

    @property
    def dropped(self) -> int:
        return self._dropped

    @property
    def codec_errors(self) -> int:
        return self._codec_errors

    def submit(self, event: Event) -> bool:
        """Enqueue an event. Returns False if the queue stayed full and it was dropped.

        A dropped event still counts as seen; it is just never classified.
        """
        try:
            self._queue.put(event, timeout=self._enqueue_timeout)
            return True
        except queue.Full:
            self._store.record_seen()
            self._dropped += 1
            logger.warning("Ingest queue full, dropping line from room %r", event.room)
            return False

    def _next_timestamp(self) -> int:
        now = int(self._clock() * 1000)
        self._last_timestamp = max(self._last_timestamp, now)
        return self._last_timestamp

    def process(self, event: Event) -> Record | None:
        """Count, classify and store a single event. Returns the filed record, if any."""
        self._store.record_seen()
        timestamp = self._next_timestamp()

        if isinstance(event, TransportError):
            record = classify_transport_error(event.room, event.raw_message, event.errors, timestamp)
        else:
            try:
                record = classify(event.raw_message, event.room, timestamp, self._codec)
            except Exception:
                self._codec_errors += 1
                logger.exception("Codec raised on line from room %r: %r", event.room, event.raw_message)
                return None

        if record is not None:
            self._store.append(record)
        return record

    def run(self):
        """Process events until shutdown is requested or ``None`` is enqueued."""
        while not self._shutdown.is_set():
            try:
                event = self._queue.get(timeout=1.0)
            except queue.Empty:
                continue
            if event is None:
                return
            self.process(event)

    def start(self):
        self._thread = threading.Thread(target=self.run, name="ingest", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 5.0):
        """Wake the loop with a poison pill and wait for it to exit."""
        try:
            self._queue.put(None, timeout=timeout)
        except queue.Full:
            pass
        if self._thread is not None:
            self._thread.join(timeout=timeout)
