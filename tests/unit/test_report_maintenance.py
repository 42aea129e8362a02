"""Unit tests for periodic report-store maintenance."""

import asyncio

import pytest

from backend.app.models.common import now_ms
from backend.app.models.report import ProcessingStatus, ReportProcessingState
from backend.app.reports.maintenance import ReportMaintenance, run_maintenance
from backend.app.reports.store import InMemoryReportStore


def _seed(store: InMemoryReportStore, age_seconds: int) -> None:
    old = now_ms() - age_seconds * 1000
    store.set(ReportProcessingState(report_id="stuck", updated_at=old))
    store.set(
        ReportProcessingState(
            report_id="stuck", status=ProcessingStatus.processing, updated_at=old
        )
    )
    store.set(ReportProcessingState(report_id="expired", updated_at=now_ms() - 2 * 3600 * 1000))


def test_run_maintenance_fails_stale_and_evicts_old() -> None:
    store = InMemoryReportStore()
    _seed(store, age_seconds=15 * 60)

    stale, evicted = run_maintenance(store, ttl_seconds=3600, stale_after_seconds=600)

    assert (stale, evicted) == (1, 1)
    assert store.get("stuck").status == ProcessingStatus.error
    assert store.get("expired") is None


@pytest.mark.asyncio
async def test_maintenance_loop_ticks_until_stopped() -> None:
    store = InMemoryReportStore()
    _seed(store, age_seconds=15 * 60)
    maintenance = ReportMaintenance(
        store, interval_seconds=0.01, ttl_seconds=3600, stale_after_seconds=600
    )

    maintenance.start()
    assert maintenance.running
    for _ in range(100):
        if store.get("expired") is None:
            break
        await asyncio.sleep(0.01)
    await maintenance.stop()

    assert not maintenance.running
    assert store.get("expired") is None
    assert store.get("stuck").status == ProcessingStatus.error


@pytest.mark.asyncio
async def test_stop_without_start_is_noop() -> None:
    maintenance = ReportMaintenance(
        InMemoryReportStore(), interval_seconds=60, ttl_seconds=3600, stale_after_seconds=600
    )
    await maintenance.stop()
    assert not maintenance.running
