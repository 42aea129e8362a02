"""Prometheus metrics endpoint."""

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter()


@router.get("/metrics")
async def metrics() -> Response:
    """Prometheus metrics endpoint.

    Exposes all registered Prometheus metrics including:
    - completion_latency_ms{purpose, outcome}
    - completion_errors_total{purpose, reason}
    - report_jobs_total{status}
    - chunk_summary_failures_total
    """
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
