"""
Lightweight metrics collection for the event verifier.
Wraps prometheus_client with async-safe patterns.
"""
from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

from prometheus_client import Counter, Histogram, start_http_server

from shared.config import get_settings
from shared.utils.logging import get_logger

logger = get_logger(__name__)

# ── Counters ────────────────────────────────────────────────────────────
SOURCE_REQUESTS = Counter(
    "ev_source_requests_total",
    "Total event source HTTP requests",
    ["source", "status"],
)
SOURCE_EVENTS = Counter(
    "ev_source_events_total",
    "Real events returned by each event source",
    ["source"],
)
SOURCE_FAILURES = Counter(
    "ev_source_failures_total",
    "Event source fetches that degraded to an empty result",
    ["source", "reason"],
)
VERIFICATIONS = Counter(
    "ev_verifications_total",
    "Verified candidate events by final status",
    ["status"],
)

# ── Histograms ──────────────────────────────────────────────────────────
SOURCE_LATENCY = Histogram(
    "ev_source_latency_seconds",
    "Event source fetch latency in seconds",
    ["source"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)
VERIFICATION_CONFIDENCE = Histogram(
    "ev_verification_confidence",
    "Confidence assigned to candidate events",
    buckets=(10, 20, 30, 40, 50, 60, 70, 80, 90, 100),
)
BATCH_LATENCY = Histogram(
    "ev_verification_batch_seconds",
    "Time to verify one batch of candidate events",
    buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)


@asynccontextmanager
async def atrack_latency(histogram: Histogram, **labels: str) -> AsyncIterator[None]:
    """Async context manager to track operation latency."""
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        if labels:
            histogram.labels(**labels).observe(elapsed)
        else:
            histogram.observe(elapsed)


def start_metrics_server(port: int | None = None) -> None:
    """Start the Prometheus metrics HTTP server."""
    settings = get_settings()
    if not settings.metrics_enabled:
        return
    metrics_port = port or settings.metrics_port
    try:
        start_http_server(metrics_port)
        logger.info("metrics_server_started", port=metrics_port)
    except OSError as exc:
        logger.warning("metrics_server_failed", error=str(exc), port=metrics_port)
