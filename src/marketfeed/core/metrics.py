"""Prometheus metrics for monitoring MarketFeed."""

from collections.abc import Iterator
from contextlib import contextmanager
from time import perf_counter

from prometheus_client import Counter, Gauge, Histogram

# Request metrics
request_latency_seconds = Histogram(
    "marketfeed_request_latency_seconds",
    "Latency of HTTP requests in seconds",
    ["endpoint", "method"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

request_total = Counter(
    "marketfeed_request_total",
    "Total number of HTTP requests",
    ["endpoint", "method", "status"],
)

active_requests = Gauge(
    "marketfeed_active_requests",
    "Number of active HTTP requests",
)

# Feed pipeline metrics
feed_generation_seconds = Histogram(
    "marketfeed_feed_generation_seconds",
    "Time spent computing a feed (cache misses only)",
    ["audience"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

feed_candidates_total = Counter(
    "marketfeed_feed_candidates_total",
    "Feed candidates emitted, by source pool",
    ["source"],
)

feed_cache_total = Counter(
    "marketfeed_feed_cache_total",
    "Feed cache lookups by result",
    ["result"],
)


def track_candidates(source: str, count: int) -> None:
    """Count candidates emitted by one source pool.

    Args:
        source: Candidate source (trending, personalized, exploration).
        count: Number of candidates.
    """
    if count:
        feed_candidates_total.labels(source=source).inc(count)


def track_cache_result(result: str) -> None:
    """Record a feed cache lookup outcome (hit, miss or error)."""
    feed_cache_total.labels(result=result).inc()


@contextmanager
def track_feed_time(audience: str) -> Iterator[None]:
    """Time one feed computation.

    Args:
        audience: ``personalized`` for identified users, ``anonymous`` otherwise.

    Example:
        with track_feed_time("anonymous"):
            entries = await service.build_feed(None, 20)
    """
    start = perf_counter()
    try:
        yield
    finally:
        feed_generation_seconds.labels(audience=audience).observe(perf_counter() - start)
