"""
Keyed fetch state machine for night timings.

Each key (lat, lng, method id) moves through IDLE -> IN_FLIGHT -> SUCCESS or
FAILED. Provider outages are retried on a backoff timer; results are fresh for
five minutes and forgotten after an hour without use. Only the most recently
requested key is ever reported to the listener, so a slow response for an old
location can never overwrite the current one.
"""

import dataclasses
import enum
import logging
import threading
import time
from typing import Any, Callable, Hashable, Optional

from qiyam.errors import DataUnavailableError, QiyamError

logger = logging.getLogger(__name__)

FRESH_FOR = 5 * 60
EVICT_AFTER = 60 * 60
MAX_RETRIES = 3
RETRY_BASE = 1.0
RETRY_CAP = 10.0


class FetchStatus(enum.Enum):
    IDLE = "idle"
    IN_FLIGHT = "in-flight"
    SUCCESS = "success"
    FAILED = "failed"


@dataclasses.dataclass
class FetchEntry:
    status: FetchStatus = FetchStatus.IDLE
    value: Any = None
    error: Optional[BaseException] = None
    attempts: int = 0
    fetched_at: Optional[float] = None
    last_used: float = 0.0
    generation: int = 0
    timer: Any = None


def retry_delay(attempt_index: int) -> float:
    """Seconds to wait before retry number attempt_index (0-based): 1, 2, 4, 8, 10, 10..."""
    return min(RETRY_BASE * 2 ** attempt_index, RETRY_CAP)


def _start_thread(fn, *args):
    t = threading.Thread(target=fn, args=args, daemon=True)
    t.start()
    return t


def _start_timer(delay, fn, *args):
    t = threading.Timer(delay, fn, args=args)
    t.daemon = True
    t.start()
    return t


class FetchCache:
    """
    Run `loader(key)` in the background and report results per key.

    The listener is called as listener(key, value, error) from the worker
    thread; GUI callers must hand the result back to their own thread.
    """

    def __init__(
        self,
        loader: Callable[[Hashable], Any],
        *,
        clock=time.monotonic,
        start_thread=_start_thread,
        start_timer=_start_timer,
        fresh_for: float = FRESH_FOR,
        evict_after: float = EVICT_AFTER,
        max_retries: int = MAX_RETRIES,
    ):
        self._loader = loader
        self._clock = clock
        self._start_thread = start_thread
        self._start_timer = start_timer
        self._fresh_for = fresh_for
        self._evict_after = evict_after
        self._max_retries = max_retries

        self._lock = threading.Lock()
        self._entries: dict = {}
        self._current_key = None
        self._listener = None
        self._closed = False

    @property
    def current_key(self):
        return self._current_key

    def entry(self, key) -> Optional[FetchEntry]:
        return self._entries.get(key)

    def request(self, key, listener, force: bool = False) -> None:
        """
        Make `key` current and get its value to `listener`.

        A fresh cached value is delivered at once. A stale one is delivered at
        once and refreshed in the background. A fetch already in flight for
        the key is joined rather than duplicated.
        """
        cached = None
        generation = None
        with self._lock:
            if self._closed:
                return
            now = self._clock()
            self._evict(now)
            self._current_key = key
            self._listener = listener

            entry = self._entries.setdefault(key, FetchEntry())
            entry.last_used = now
            if entry.status is FetchStatus.IN_FLIGHT and not force:
                return
            if entry.fetched_at is not None:
                cached = entry.value
            fresh = entry.fetched_at is not None and now - entry.fetched_at < self._fresh_for
            if force or not fresh:
                generation = self._begin(entry)

        if cached is not None:
            listener(key, cached, None)
        if generation is not None:
            self._start_thread(self._attempt, key, generation)

    def close(self) -> None:
        """Stop delivering results and cancel pending retries."""
        with self._lock:
            self._closed = True
            self._listener = None
            for entry in self._entries.values():
                self._cancel_timer(entry)

    def _begin(self, entry: FetchEntry) -> int:
        self._cancel_timer(entry)
        entry.generation += 1
        entry.status = FetchStatus.IN_FLIGHT
        entry.attempts = 0
        entry.error = None
        return entry.generation

    def _evict(self, now: float) -> None:
        for key in list(self._entries):
            entry = self._entries[key]
            if entry.status is FetchStatus.IN_FLIGHT:
                continue
            if now - entry.last_used > self._evict_after:
                self._cancel_timer(entry)
                del self._entries[key]
                logger.debug("Evicted cached timings for %s", key)

    @staticmethod
    def _cancel_timer(entry: FetchEntry) -> None:
        if entry.timer is not None:
            entry.timer.cancel()
            entry.timer = None

    def _attempt(self, key, generation: int) -> None:
        try:
            value = self._loader(key)
        except Exception as exc:
            self._on_failure(key, generation, exc)
        else:
            self._on_success(key, generation, value)

    def _retry(self, key, generation: int) -> None:
        with self._lock:
            entry = self._entries.get(key)
            if self._closed or entry is None or entry.generation != generation:
                return
            entry.timer = None
            entry.status = FetchStatus.IN_FLIGHT
        self._attempt(key, generation)

    def _on_success(self, key, generation: int, value) -> None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or entry.generation != generation:
                logger.debug("Dropping superseded result for %s", key)
                return
            entry.status = FetchStatus.SUCCESS
            entry.value = value
            entry.error = None
            entry.fetched_at = self._clock()
            listener = self._deliverable(key)
        if listener:
            listener(key, value, None)

    def _on_failure(self, key, generation: int, exc: Exception) -> None:
        delay = None
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or entry.generation != generation:
                return
            entry.attempts += 1
            entry.error = exc
            entry.status = FetchStatus.FAILED
            retryable = isinstance(exc, DataUnavailableError)
            if retryable and entry.attempts <= self._max_retries and not self._closed:
                delay = retry_delay(entry.attempts - 1)
                listener = None
            else:
                listener = self._deliverable(key)

        if delay is not None:
            logger.info("Fetch for %s failed (%s), retry %d in %.0fs", key, exc, entry.attempts, delay)
            timer = self._start_timer(delay, self._retry, key, generation)
            with self._lock:
                if entry.generation == generation and entry.status is FetchStatus.FAILED:
                    entry.timer = timer
            return

        if retryable:
            logger.error("Giving up on %s after %d attempts: %s", key, entry.attempts, exc)
        elif isinstance(exc, QiyamError):
            logger.warning("Fetch for %s failed: %s", key, exc)
        else:
            logger.error("Unexpected error fetching %s", key, exc_info=exc)
        if listener:
            listener(key, None, exc)

    def _deliverable(self, key):
        if self._closed or key != self._current_key:
            return None
        return self._listener
