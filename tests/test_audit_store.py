"""Audit collection: ordering, filtering, retention and durable delivery."""

import threading
from datetime import date, datetime, timedelta, timezone

from app.schemas.impersonation import AuditEntry, AuditEventType, AuditFilters
from app.services.audit_sink import AuditSinkUnavailable
from app.services.audit_store import AuditStore

BASE_TIME = datetime(2024, 3, 5, 9, 0, tzinfo=timezone.utc)


def _entry(
    index: int,
    *,
    event_type: AuditEventType = AuditEventType.SESSION_ACTION,
    session_id: str = "imp_a",
    admin_id: int = 1,
    target_user_id: int = 2,
    timestamp: datetime | None = None,
) -> AuditEntry:
    return AuditEntry(
        id=f"audit_{index}",
        type=event_type,
        session_id=session_id,
        admin_id=admin_id,
        admin_email=f"admin{admin_id}@agency.local",
        target_user_id=target_user_id,
        target_user_email=f"user{target_user_id}@clinic.local",
        timestamp=timestamp or BASE_TIME + timedelta(seconds=index),
        action="update_profile" if event_type is AuditEventType.SESSION_ACTION else None,
    )


class RecordingSink:
    def __init__(self, failures: int = 0) -> None:
        self.written: list[str] = []
        self.failures = failures

    def write(self, entry: AuditEntry) -> None:
        if self.failures > 0:
            self.failures -= 1
            raise AuditSinkUnavailable("database is locked")
        self.written.append(entry.id)

    def load_recent(self, limit: int) -> list[AuditEntry]:
        return [_entry(index) for index in range(limit + 3)][-limit:]


def test_query_returns_newest_first() -> None:
    store = AuditStore()
    for index in (3, 1, 2):
        store.append(_entry(index))

    assert [entry.id for entry in store.query()] == ["audit_3", "audit_2", "audit_1"]


def test_query_ties_put_later_append_first() -> None:
    store = AuditStore()
    store.append(_entry(1, timestamp=BASE_TIME))
    store.append(_entry(2, timestamp=BASE_TIME))

    assert [entry.id for entry in store.query()] == ["audit_2", "audit_1"]


def test_query_filters_are_combined() -> None:
    store = AuditStore()
    store.append(_entry(1, event_type=AuditEventType.SESSION_START, session_id="imp_a"))
    store.append(_entry(2, session_id="imp_a"))
    store.append(_entry(3, session_id="imp_b", admin_id=7, target_user_id=9))
    store.append(_entry(4, event_type=AuditEventType.SESSION_END, session_id="imp_a"))

    assert [entry.id for entry in store.query(AuditFilters(session_id="imp_a"))] == ["audit_4", "audit_2", "audit_1"]
    assert [entry.id for entry in store.query(AuditFilters(admin_id=7))] == ["audit_3"]
    assert [entry.id for entry in store.query(AuditFilters(target_user_id=2, type=AuditEventType.SESSION_ACTION))] == [
        "audit_2"
    ]
    assert store.query(AuditFilters(admin_id=99)) == []


def test_date_only_end_bound_includes_whole_day() -> None:
    store = AuditStore()
    store.append(_entry(1, timestamp=datetime(2024, 3, 4, 23, 59, tzinfo=timezone.utc)))
    store.append(_entry(2, timestamp=datetime(2024, 3, 5, 18, 30, tzinfo=timezone.utc)))
    store.append(_entry(3, timestamp=datetime(2024, 3, 6, 0, 0, tzinfo=timezone.utc)))

    result = store.query(AuditFilters(start_date=date(2024, 3, 5), end_date=date(2024, 3, 5)))

    assert [entry.id for entry in result] == ["audit_2"]


def test_datetime_bounds_are_inclusive() -> None:
    store = AuditStore()
    store.append(_entry(1, timestamp=BASE_TIME))
    store.append(_entry(2, timestamp=BASE_TIME + timedelta(minutes=1)))

    result = store.query(AuditFilters(start_date=BASE_TIME, end_date=BASE_TIME))

    assert [entry.id for entry in result] == ["audit_1"]


def test_cleanup_evicts_oldest_entries_beyond_cap() -> None:
    store = AuditStore()
    appended = [_entry(index) for index in range(1005)]
    for entry in appended:
        store.append(entry)

    evicted = store.cleanup()

    assert evicted == 5
    assert len(store) == 1000
    remaining = store.query()
    assert {entry.id for entry in remaining} == {f"audit_{index}" for index in range(5, 1005)}
    assert remaining == list(reversed(appended[5:]))


def test_cleanup_is_idempotent() -> None:
    store = AuditStore(max_retained=10)
    for index in range(15):
        store.append(_entry(index))

    assert store.cleanup() == 5
    after_first = store.query()
    assert store.cleanup() == 0
    assert store.query() == after_first
    assert len(store) == 10


def test_cleanup_below_cap_keeps_everything() -> None:
    store = AuditStore(max_retained=10)
    for index in range(10):
        store.append(_entry(index))

    assert store.cleanup() == 0
    assert len(store) == 10


def test_cleanup_pins_start_of_active_session() -> None:
    store = AuditStore(max_retained=3, protected_sessions=lambda: {"imp_live"})
    store.append(_entry(0, event_type=AuditEventType.SESSION_START, session_id="imp_live"))
    for index in range(1, 6):
        store.append(_entry(index, session_id="imp_live"))

    evicted = store.cleanup()

    assert evicted == 3
    assert len(store) == 3
    assert [entry.id for entry in store.query()] == ["audit_5", "audit_4", "audit_0"]


def test_cleanup_does_not_pin_finished_sessions() -> None:
    store = AuditStore(max_retained=2, protected_sessions=lambda: set())
    store.append(_entry(0, event_type=AuditEventType.SESSION_START, session_id="imp_done"))
    for index in range(1, 4):
        store.append(_entry(index, session_id="imp_done"))

    store.cleanup()

    assert [entry.id for entry in store.query()] == ["audit_3", "audit_2"]


def test_cleanup_running_inside_another_cleanup_keeps_new_entries() -> None:
    calls = 0

    def protected_sessions() -> set[str]:
        nonlocal calls
        calls += 1
        if calls == 1:
            store.append(_entry(100))
            store.cleanup()
        return set()

    store = AuditStore(max_retained=3, protected_sessions=protected_sessions)
    for index in range(5):
        store.append(_entry(index))

    store.cleanup()

    assert [entry.id for entry in store.query()] == ["audit_100", "audit_4", "audit_3"]


def test_concurrent_appends_and_cleanups_keep_newest_entries() -> None:
    store = AuditStore(max_retained=50)
    writers = 4
    per_writer = 200
    start = threading.Barrier(writers + 2)

    def write(offset: int) -> None:
        start.wait()
        for index in range(per_writer):
            store.append(_entry(index * writers + offset))

    def clean() -> None:
        start.wait()
        for _ in range(100):
            store.cleanup()

    threads = [threading.Thread(target=write, args=(offset,)) for offset in range(writers)]
    threads += [threading.Thread(target=clean) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    store.cleanup()

    newest = {f"audit_{index}" for index in range(writers * per_writer - 50, writers * per_writer)}
    assert {entry.id for entry in store.query()} == newest


def test_sink_receives_entries_in_append_order() -> None:
    sink = RecordingSink()
    store = AuditStore(sink)
    for index in range(25):
        store.append(_entry(index, timestamp=BASE_TIME - timedelta(seconds=index)))

    assert store.flush(timeout=5) is True
    store.close()

    assert sink.written == [f"audit_{index}" for index in range(25)]


def test_failed_delivery_is_observed_and_redelivered() -> None:
    sink = RecordingSink(failures=1)
    failures: list[tuple[str, str]] = []
    store = AuditStore(sink, observer=lambda entry, exc: failures.append((entry.id, str(exc))))

    future = store.append(_entry(1))
    assert future is not None
    store.flush(timeout=5)

    assert failures == [("audit_1", "database is locked")]
    assert store.undelivered == 1
    assert len(store) == 1
    assert sink.written == []

    assert store.redeliver() == 1
    store.flush(timeout=5)
    store.close()

    assert store.undelivered == 0
    assert sink.written == ["audit_1"]


def test_failing_observer_does_not_break_delivery() -> None:
    def broken_observer(entry: AuditEntry, exc: BaseException) -> None:
        raise RuntimeError("observer down")

    sink = RecordingSink(failures=1)
    store = AuditStore(sink, observer=broken_observer)
    store.append(_entry(1))
    store.append(_entry(2))

    assert store.flush(timeout=5) is True
    store.close()
    assert sink.written == ["audit_2"]
    assert store.undelivered == 1


def test_append_without_sink_returns_none() -> None:
    store = AuditStore()

    assert store.append(_entry(1)) is None
    assert store.redeliver() == 0
    assert store.flush(timeout=0) is True


def test_load_restores_newest_entries_from_sink() -> None:
    store = AuditStore(RecordingSink(), max_retained=4)

    restored = store.load()
    store.close()

    assert restored == 4
    assert [entry.id for entry in store.query()] == ["audit_6", "audit_5", "audit_4", "audit_3"]


def test_load_survives_unavailable_sink() -> None:
    class BrokenSink(RecordingSink):
        def load_recent(self, limit: int) -> list[AuditEntry]:
            raise AuditSinkUnavailable("no database")

    store = AuditStore(BrokenSink())

    assert store.load() == 0
    assert len(store) == 0
    store.close()
