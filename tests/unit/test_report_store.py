"""Unit tests for the report processing-state store."""

from fnmatch import fnmatch
from unittest.mock import MagicMock

import pytest

from backend.app.models.report import ProcessingStatus, ReportProcessingState
from backend.app.reports.store import (
    STALE_JOB_ERROR,
    InMemoryReportStore,
    InvalidStatusTransitionError,
    RedisReportStore,
)

NOW = 1_750_000_000_000


def _state(
    report_id: str = "r1", status: ProcessingStatus = ProcessingStatus.pending, **kwargs: object
) -> ReportProcessingState:
    return ReportProcessingState(report_id=report_id, status=status, **kwargs)


def _fake_redis() -> MagicMock:
    """MagicMock Redis client backed by a dict."""
    data: dict[bytes, bytes] = {}
    client = MagicMock()

    def _set(key: str, value: str, ex: int | None = None) -> None:
        data[key.encode()] = value.encode()

    client.get.side_effect = lambda key: data.get(key.encode())
    client.set.side_effect = _set
    client.delete.side_effect = lambda key: data.pop(key.encode(), None)
    client.scan_iter.side_effect = lambda match: [k for k in list(data) if fnmatch(k.decode(), match)]
    client.data = data
    return client


@pytest.fixture(params=["memory", "redis"])
def store(request: pytest.FixtureRequest) -> InMemoryReportStore | RedisReportStore:
    if request.param == "memory":
        return InMemoryReportStore()
    return RedisReportStore(_fake_redis(), ttl_seconds=3600)


class TestReportStore:
    """Behavior shared by both store implementations."""

    def test_get_unknown_returns_none(self, store) -> None:  # type: ignore[no-untyped-def]
        assert store.get("missing") is None

    def test_set_then_get(self, store) -> None:  # type: ignore[no-untyped-def]
        store.set(_state(project_context="Relaunch"))

        loaded = store.get("r1")

        assert loaded is not None
        assert loaded.status == ProcessingStatus.pending
        assert loaded.project_context == "Relaunch"

    def test_forward_transitions_allowed(self, store) -> None:  # type: ignore[no-untyped-def]
        store.set(_state())
        store.set(_state(status=ProcessingStatus.processing))
        store.set(_state(status=ProcessingStatus.completed))

        assert store.get("r1").status == ProcessingStatus.completed

    def test_same_status_rewrite_allowed(self, store) -> None:  # type: ignore[no-untyped-def]
        store.set(_state(status=ProcessingStatus.pending))
        store.set(_state(status=ProcessingStatus.pending, project_context="updated"))

        assert store.get("r1").project_context == "updated"

    @pytest.mark.parametrize(
        ("first", "second"),
        [
            (ProcessingStatus.processing, ProcessingStatus.pending),
            (ProcessingStatus.completed, ProcessingStatus.processing),
            (ProcessingStatus.completed, ProcessingStatus.completed),
            (ProcessingStatus.error, ProcessingStatus.completed),
        ],
    )
    def test_backward_or_terminal_transitions_rejected(
        self, store, first: ProcessingStatus, second: ProcessingStatus  # type: ignore[no-untyped-def]
    ) -> None:
        path = {
            ProcessingStatus.processing: [ProcessingStatus.processing],
            ProcessingStatus.completed: [ProcessingStatus.processing, ProcessingStatus.completed],
            ProcessingStatus.error: [ProcessingStatus.error],
        }
        store.set(_state())
        for status in path[first]:
            store.set(_state(status=status))

        with pytest.raises(InvalidStatusTransitionError):
            store.set(_state(status=second))

        assert store.get("r1").status == first

    def test_delete(self, store) -> None:  # type: ignore[no-untyped-def]
        store.set(_state())
        store.delete("r1")
        store.delete("r1")
        assert store.get("r1") is None

    def test_cleanup_evicts_old_records(self, store) -> None:  # type: ignore[no-untyped-def]
        store.set(_state("old", updated_at=NOW - 2 * 3600 * 1000))
        store.set(_state("fresh", updated_at=NOW - 60 * 1000))

        evicted = store.cleanup(3600, now=NOW)

        assert evicted == 1
        assert store.get("old") is None
        assert store.get("fresh") is not None

    def test_reconcile_stale_marks_stuck_jobs(self, store) -> None:  # type: ignore[no-untyped-def]
        store.set(_state("stuck", updated_at=NOW - 20 * 60 * 1000))
        store.set(_state("stuck", status=ProcessingStatus.processing, updated_at=NOW - 20 * 60 * 1000))
        store.set(_state("busy", updated_at=NOW))
        store.set(_state("busy", status=ProcessingStatus.processing, updated_at=NOW - 60 * 1000))
        store.set(_state("waiting", updated_at=NOW - 20 * 60 * 1000))

        marked = store.reconcile_stale(600, now=NOW)

        assert marked == 1
        stuck = store.get("stuck")
        assert stuck.status == ProcessingStatus.error
        assert stuck.error == STALE_JOB_ERROR
        assert stuck.updated_at == NOW
        assert store.get("busy").status == ProcessingStatus.processing
        assert store.get("waiting").status == ProcessingStatus.pending


def test_in_memory_store_returns_copies() -> None:
    store = InMemoryReportStore()
    store.set(_state())

    loaded = store.get("r1")
    loaded.project_context = "mutated"

    assert store.get("r1").project_context is None


def test_redis_store_writes_camel_case_json_with_expiry() -> None:
    redis_client = _fake_redis()
    store = RedisReportStore(redis_client, ttl_seconds=120)

    store.set(_state(project_context="ctx"))

    raw = redis_client.data[b"report:r1"].decode()
    assert '"reportId":"r1"' in raw
    assert '"projectContext":"ctx"' in raw
    assert redis_client.set.call_args.args[0] == "report:r1"
    assert redis_client.set.call_args.kwargs == {"ex": 120}
    redis_client.expire.assert_not_called()
