"""Processing-state store for background report jobs."""

import logging
from typing import Protocol

import redis

from backend.app.config import get_settings
from backend.app.models.common import now_ms
from backend.app.models.report import ProcessingStatus, ReportProcessingState

logger = logging.getLogger(__name__)

# Allowed status changes; completed and error are terminal
ALLOWED_TRANSITIONS: dict[ProcessingStatus, frozenset[ProcessingStatus]] = {
    ProcessingStatus.pending: frozenset(
        {ProcessingStatus.pending, ProcessingStatus.processing, ProcessingStatus.error}
    ),
    ProcessingStatus.processing: frozenset(
        {ProcessingStatus.processing, ProcessingStatus.completed, ProcessingStatus.error}
    ),
    ProcessingStatus.completed: frozenset(),
    ProcessingStatus.error: frozenset(),
}

STALE_JOB_ERROR = "Report processing did not finish in time"


class InvalidStatusTransitionError(Exception):
    """Status change would move a report job backwards or out of a terminal state."""

    def __init__(self, report_id: str, current: ProcessingStatus, new: ProcessingStatus) -> None:
        super().__init__(
            f"Invalid status transition for report {report_id}: {current.value} -> {new.value}"
        )
        self.report_id = report_id
        self.current = current
        self.new = new


def check_transition(
    report_id: str, current: ReportProcessingState | None, new: ReportProcessingState
) -> None:
    """Raise InvalidStatusTransitionError unless current -> new is allowed."""
    if current is None:
        return
    if new.status not in ALLOWED_TRANSITIONS[current.status]:
        raise InvalidStatusTransitionError(report_id, current.status, new.status)


class ReportStore(Protocol):
    """Key-value store of report job records."""

    def get(self, report_id: str) -> ReportProcessingState | None:
        """Get a job record, None if unknown or evicted."""
        ...

    def set(self, state: ReportProcessingState) -> None:
        """Create or replace a job record.

        Raises:
            InvalidStatusTransitionError: The status change is not allowed
        """
        ...

    def delete(self, report_id: str) -> None:
        """Delete a job record (no-op if missing)."""
        ...

    def cleanup(self, max_age_seconds: int, now: int | None = None) -> int:
        """Evict records not updated within max_age_seconds.

        Returns:
            Number of evicted records
        """
        ...

    def reconcile_stale(self, stale_after_seconds: int, now: int | None = None) -> int:
        """Mark jobs stuck in processing longer than stale_after_seconds as error.

        Returns:
            Number of jobs marked as error
        """
        ...


def _mark_stale(state: ReportProcessingState, now: int) -> ReportProcessingState:
    return state.model_copy(
        update={"status": ProcessingStatus.error, "error": STALE_JOB_ERROR, "updated_at": now}
    )


class InMemoryReportStore:
    """In-memory implementation of ReportStore (single process)."""

    def __init__(self) -> None:
        self._reports: dict[str, ReportProcessingState] = {}

    def get(self, report_id: str) -> ReportProcessingState | None:
        """Get a job record."""
        state = self._reports.get(report_id)
        return state.model_copy(deep=True) if state else None

    def set(self, state: ReportProcessingState) -> None:
        """Create or replace a job record."""
        check_transition(state.report_id, self._reports.get(state.report_id), state)
        self._reports[state.report_id] = state.model_copy(deep=True)

    def delete(self, report_id: str) -> None:
        """Delete a job record."""
        self._reports.pop(report_id, None)

    def cleanup(self, max_age_seconds: int, now: int | None = None) -> int:
        """Evict old records."""
        now = now if now is not None else now_ms()
        cutoff = now - max_age_seconds * 1000
        expired = [rid for rid, state in self._reports.items() if state.updated_at < cutoff]
        for rid in expired:
            del self._reports[rid]
        return len(expired)

    def reconcile_stale(self, stale_after_seconds: int, now: int | None = None) -> int:
        """Fail jobs stuck in processing."""
        now = now if now is not None else now_ms()
        cutoff = now - stale_after_seconds * 1000
        stale = [
            rid
            for rid, state in self._reports.items()
            if state.status == ProcessingStatus.processing and state.updated_at < cutoff
        ]
        for rid in stale:
            self._reports[rid] = _mark_stale(self._reports[rid], now)
        return len(stale)


class RedisReportStore:
    """Redis-backed ReportStore.

    Records live under ``report:{id}`` as JSON with an EXPIRE equal to the
    TTL, so Redis evicts old records on its own; ``cleanup`` also sweeps
    records whose ``updatedAt`` is too old.
    """

    KEY_PREFIX = "report:"

    def __init__(self, redis_client: redis.Redis, ttl_seconds: int = 3600) -> None:
        """Initialize store.

        Args:
            redis_client: Redis client
            ttl_seconds: Expiry applied on every write (default 1 hour)
        """
        self._redis = redis_client
        self._ttl_seconds = ttl_seconds

    def _key(self, report_id: str) -> str:
        return f"{self.KEY_PREFIX}{report_id}"

    def _load(self, key: str) -> ReportProcessingState | None:
        raw = self._redis.get(key)
        if raw is None:
            return None
        return ReportProcessingState.model_validate_json(raw)

    def _write(self, state: ReportProcessingState) -> None:
        self._redis.set(
            self._key(state.report_id),
            state.model_dump_json(by_alias=True),
            ex=self._ttl_seconds,
        )

    def get(self, report_id: str) -> ReportProcessingState | None:
        """Get a job record."""
        return self._load(self._key(report_id))

    def set(self, state: ReportProcessingState) -> None:
        """Create or replace a job record."""
        check_transition(state.report_id, self.get(state.report_id), state)
        self._write(state)

    def delete(self, report_id: str) -> None:
        """Delete a job record."""
        self._redis.delete(self._key(report_id))

    def _scan(self) -> list[tuple[str, ReportProcessingState]]:
        records = []
        for key in self._redis.scan_iter(match=f"{self.KEY_PREFIX}*"):
            key_str = key.decode() if isinstance(key, bytes) else key
            state = self._load(key_str)
            if state is not None:
                records.append((key_str, state))
        return records

    def cleanup(self, max_age_seconds: int, now: int | None = None) -> int:
        """Evict old records."""
        now = now if now is not None else now_ms()
        cutoff = now - max_age_seconds * 1000
        evicted = 0
        for key, state in self._scan():
            if state.updated_at < cutoff:
                self._redis.delete(key)
                evicted += 1
        return evicted

    def reconcile_stale(self, stale_after_seconds: int, now: int | None = None) -> int:
        """Fail jobs stuck in processing."""
        now = now if now is not None else now_ms()
        cutoff = now - stale_after_seconds * 1000
        marked = 0
        for _key, state in self._scan():
            if state.status == ProcessingStatus.processing and state.updated_at < cutoff:
                self._write(_mark_stale(state, now))
                marked += 1
        return marked


_store: ReportStore | None = None


def get_report_store() -> ReportStore:
    """Dependency returning the process-wide report store.

    Returns:
        RedisReportStore if REDIS_URL is configured, InMemoryReportStore otherwise
    """
    global _store
    if _store is None:
        settings = get_settings()
        if settings.redis_url:
            logger.info("Using Redis report store")
            _store = RedisReportStore(
                redis.Redis.from_url(settings.redis_url), ttl_seconds=settings.report_ttl_seconds
            )
        else:
            logger.info("Using in-memory report store")
            _store = InMemoryReportStore()
    return _store
