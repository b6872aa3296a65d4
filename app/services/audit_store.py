"""In-memory impersonation audit collection with durable, best-effort delivery."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import date, datetime

from app.core.config import settings
from app.schemas.impersonation import AuditEntry, AuditEventType, AuditFilters
from app.services.audit_sink import AuditSink, AuditSinkUnavailable
from app.utils.time import as_utc, day_end, day_start

logger = logging.getLogger(__name__)

MAX_RETAINED: int = 1000

DeliveryObserver = Callable[[AuditEntry, BaseException], None]


def log_delivery_failure(entry: AuditEntry, exc: BaseException) -> None:
    logger.warning(
        "[AUDIT] Durable write failed for entry=%s type=%s session=%s: %s",
        entry.id,
        entry.type.value,
        entry.session_id,
        exc,
    )


def _lower_bound(value: datetime | date) -> datetime:
    if isinstance(value, datetime):
        return as_utc(value)
    return day_start(value)


def _upper_bound(value: datetime | date) -> datetime:
    if isinstance(value, datetime):
        return as_utc(value)
    return day_end(value)


def matches(entry: AuditEntry, filters: AuditFilters) -> bool:
    """Return True when the entry satisfies every set filter."""
    if filters.admin_id is not None and entry.admin_id != filters.admin_id:
        return False
    if filters.target_user_id is not None and entry.target_user_id != filters.target_user_id:
        return False
    if filters.session_id is not None and entry.session_id != filters.session_id:
        return False
    if filters.type is not None and entry.type != filters.type:
        return False
    timestamp = as_utc(entry.timestamp)
    if filters.start_date is not None and timestamp < _lower_bound(filters.start_date):
        return False
    if filters.end_date is not None and timestamp > _upper_bound(filters.end_date):
        return False
    return True


def newest_first(entries: Iterable[AuditEntry]) -> list[AuditEntry]:
    """Sort by timestamp descending; equal timestamps keep the later-appended entry first."""
    indexed = list(enumerate(entries))
    indexed.sort(key=lambda pair: (as_utc(pair[1].timestamp), pair[0]), reverse=True)
    return [entry for _, entry in indexed]


class AuditStore:
    """Append-only, size-bounded audit collection.

    Appends always land in memory first. When a sink is configured each entry
    is also handed to a single background worker, so durable writes keep
    append order and never block the caller. Failed deliveries are reported to
    ``observer`` and kept for :meth:`redeliver`.
    """

    def __init__(
        self,
        sink: AuditSink | None = None,
        *,
        max_retained: int = MAX_RETAINED,
        observer: DeliveryObserver = log_delivery_failure,
        protected_sessions: Callable[[], set[str]] | None = None,
    ) -> None:
        self._entries: list[AuditEntry] = []
        self._sink = sink
        self._max_retained = max_retained
        self._observer = observer
        self._protected_sessions = protected_sessions
        self._executor: ThreadPoolExecutor | None = None
        self._entries_lock = threading.Lock()
        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)
        self._pending: set[Future] = set()
        self._undelivered: dict[str, AuditEntry] = {}
        if sink is not None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="audit-sink")

    @classmethod
    def from_settings(cls, sink: AuditSink | None = None, **kwargs) -> AuditStore:
        return cls(sink, max_retained=settings.audit_max_retained, **kwargs)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def max_retained(self) -> int:
        return self._max_retained

    @property
    def undelivered(self) -> int:
        with self._lock:
            return len(self._undelivered)

    def set_protected_sessions(self, provider: Callable[[], set[str]] | None) -> None:
        self._protected_sessions = provider

    def append(self, entry: AuditEntry) -> Future | None:
        """Record ``entry`` locally and schedule its durable write.

        Returns the delivery future, or ``None`` when no sink is configured.
        """
        with self._entries_lock:
            self._entries.append(entry)
        return self._dispatch(entry)

    def query(self, filters: AuditFilters | None = None) -> list[AuditEntry]:
        with self._entries_lock:
            snapshot = list(self._entries)
        if filters is not None:
            snapshot = [entry for entry in snapshot if matches(entry, filters)]
        return newest_first(snapshot)

    def cleanup(self) -> int:
        """Evict the oldest entries beyond the retention cap and return how many were removed.

        Protected session ids are resolved before the collection is locked; the
        snapshot, eviction and swap then run as one step, so concurrent appends
        and cleanups never lose or resurrect an entry.
        """
        protected_ids = self._protected_session_ids()
        with self._entries_lock:
            snapshot = self._entries
            if len(snapshot) <= self._max_retained:
                return 0

            pinned_ids = {
                entry.id
                for entry in snapshot
                if entry.type is AuditEventType.SESSION_START and entry.session_id in protected_ids
            }
            capacity = max(self._max_retained - len(pinned_ids), 0)
            others = newest_first(entry for entry in snapshot if entry.id not in pinned_ids)
            kept_ids = pinned_ids | {entry.id for entry in others[:capacity]}
            self._entries = [entry for entry in snapshot if entry.id in kept_ids]
            evicted = len(snapshot) - len(self._entries)
        logger.info("[AUDIT] Retention cleanup evicted %s entries (cap=%s).", evicted, self._max_retained)
        return evicted

    def load(self) -> int:
        """Replace the collection with the newest entries held by the durable sink."""
        if self._sink is None:
            return 0
        try:
            entries = self._sink.load_recent(self._max_retained)
        except AuditSinkUnavailable:
            logger.exception("[AUDIT] Could not restore audit entries; starting with an empty collection.")
            return 0
        restored = list(reversed(newest_first(entries)))
        with self._entries_lock:
            self._entries = restored
        logger.info("[AUDIT] Restored %s audit entries from durable storage.", len(restored))
        return len(restored)

    def flush(self, timeout: float | None = None) -> bool:
        """Wait for scheduled durable writes; return False if some are still running."""
        with self._idle:
            return self._idle.wait_for(lambda: not self._pending, timeout=timeout)

    def redeliver(self) -> int:
        """Retry every failed durable write. Returns the number of entries resubmitted."""
        if self._executor is None:
            return 0
        with self._lock:
            retry = list(self._undelivered.values())
            self._undelivered.clear()
        for entry in retry:
            self._dispatch(entry)
        if retry:
            logger.info("[AUDIT] Resubmitted %s undelivered audit entries.", len(retry))
        return len(retry)

    def close(self, timeout: float | None = None) -> None:
        self.flush(timeout)
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
        if self.undelivered:
            logger.warning("[AUDIT] Shutting down with %s undelivered audit entries.", self.undelivered)

    def _dispatch(self, entry: AuditEntry) -> Future | None:
        if self._sink is None or self._executor is None:
            return None
        with self._lock:
            future = self._executor.submit(self._sink.write, entry)
            self._pending.add(future)
        future.add_done_callback(lambda done: self._on_delivered(entry, done))
        return future

    def _on_delivered(self, entry: AuditEntry, future: Future) -> None:
        exc = future.exception()
        if exc is not None:
            with self._lock:
                self._undelivered[entry.id] = entry
            try:
                self._observer(entry, exc)
            except Exception:
                logger.exception("[AUDIT] Delivery observer failed for entry=%s", entry.id)
        with self._idle:
            self._pending.discard(future)
            self._idle.notify_all()

    def _protected_session_ids(self) -> set[str]:
        if self._protected_sessions is None:
            return set()
        return set(self._protected_sessions())
