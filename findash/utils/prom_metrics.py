"""
Prometheus metrics registration and helpers.

Exports:
- observe_request(...): record HTTP request metrics
- observe_analysis(...): record a marketing CSV analysis
- observe_import(...): record report rows processed by an import
- metrics_latest(): return text exposition from correct registry (handles multiprocess)
- CONTENT_TYPE_LATEST: correct Prometheus content type
"""

import os
from prometheus_client import Counter, Histogram, CollectorRegistry, generate_latest, CONTENT_TYPE_LATEST
from prometheus_client import multiprocess


REQUEST_COUNTER = Counter(
    'fd_http_requests_total', 'Total HTTP requests', ['endpoint', 'status']
)

REQUEST_LATENCY = Histogram(
    'fd_http_request_latency_seconds', 'HTTP request latency seconds', ['endpoint']
)

ANALYSES = Counter(
    'fd_marketing_analyses_total', 'Marketing CSV analyses', ['outcome']
)

ANALYSIS_LATENCY = Histogram(
    'fd_marketing_analysis_seconds', 'Marketing CSV analysis duration seconds'
)

IMPORTED_ROWS = Counter(
    'fd_import_rows_total', 'Report rows processed by imports', ['result']
)


def observe_request(endpoint: str, status: int, latency_seconds: float) -> None:
    REQUEST_COUNTER.labels(endpoint=endpoint, status=str(status)).inc()
    REQUEST_LATENCY.labels(endpoint=endpoint).observe(latency_seconds)


def observe_analysis(outcome: str, duration_seconds: float = None) -> None:
    ANALYSES.labels(outcome=outcome).inc()
    if duration_seconds is not None:
        ANALYSIS_LATENCY.observe(duration_seconds)


def observe_import(inserted: int, updated: int, skipped: int) -> None:
    for result, count in (('inserted', inserted), ('updated', updated), ('skipped', skipped)):
        if count:
            IMPORTED_ROWS.labels(result=result).inc(count)


def metrics_latest() -> bytes:
    """Return the Prometheus text exposition, multiprocess-aware if configured."""
    prom_mp_dir = os.getenv('PROMETHEUS_MULTIPROC_DIR')
    if prom_mp_dir:
        registry = CollectorRegistry()
        multiprocess.MultiProcessCollector(registry)
        return generate_latest(registry)
    # Default registry
    return generate_latest()
