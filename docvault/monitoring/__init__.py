"""
Monitoring module for application metrics
"""

from docvault.monitoring.metrics import metrics_registry, track_blob_operation, get_metrics

__all__ = [
    "metrics_registry",
    "track_blob_operation",
    "get_metrics",
]
