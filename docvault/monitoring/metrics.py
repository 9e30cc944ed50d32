"""
Prometheus metrics for the Document Vault
"""

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

from prometheus_client import Counter, Histogram, CollectorRegistry
from prometheus_client.exposition import generate_latest

# Create a custom registry
metrics_registry = CollectorRegistry()

# Document metrics
document_uploads_total = Counter(
    "document_uploads_total",
    "Total document uploads",
    ["kind", "status"],
    registry=metrics_registry
)

document_downloads_total = Counter(
    "document_downloads_total",
    "Total document downloads",
    ["status"],
    registry=metrics_registry
)

# Blob storage metrics
blob_operation_duration_seconds = Histogram(
    "blob_operation_duration_seconds",
    "Blob store operation latency",
    ["backend", "operation"],
    buckets=(.005, .01, .025, .05, .1, .25, .5, 1.0, 2.5, 5.0, 10.0),
    registry=metrics_registry
)

# Access control metrics
access_denied_total = Counter(
    "access_denied_total",
    "Capability checks that failed",
    ["action"],
    registry=metrics_registry
)


@asynccontextmanager
async def track_blob_operation(backend: str, operation: str) -> AsyncIterator[None]:
    """Time a blob store operation"""
    start_time = time.time()
    try:
        yield
    finally:
        blob_operation_duration_seconds.labels(
            backend=backend,
            operation=operation
        ).observe(time.time() - start_time)


def get_metrics() -> bytes:
    """Render the registry in Prometheus text format"""
    return generate_latest(metrics_registry)
