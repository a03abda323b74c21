"""
Prometheus metrics for the projector.

Usage:
    from projector.metrics import start_metrics_server, track_operation

    start_metrics_server(enabled=True, port=8080)

    with track_operation("project"):
        ...
"""

import logging
import threading
import time
from contextlib import contextmanager
from typing import Generator

from prometheus_client import Counter, Histogram, start_http_server

logger = logging.getLogger(__name__)

OPERATIONS_TOTAL = Counter(
    "servicebinding_projector_operations_total",
    "Total number of projector operations",
    labelnames=["operation", "outcome"],
)

OPERATION_DURATION = Histogram(
    "servicebinding_projector_operation_duration_seconds",
    "Duration of projector operations in seconds",
    labelnames=["operation"],
    buckets=(0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0),
)

_server_started = False
_server_lock = threading.Lock()


def start_metrics_server(enabled: bool, port: int) -> None:
    """
    Start Prometheus metrics HTTP server in background thread.

    Args:
        enabled: Whether to start metrics server (PROJECTOR_METRICS_ENABLED)
        port: HTTP port for /metrics endpoint (PROJECTOR_METRICS_PORT)
    """
    global _server_started

    if not enabled:
        logger.info("Metrics server disabled (PROJECTOR_METRICS_ENABLED=false)")
        return

    with _server_lock:
        if _server_started:
            return
        start_http_server(port)
        _server_started = True
    logger.info(f"Metrics server started on :{port}/metrics")


@contextmanager
def track_operation(operation: str) -> Generator[None, None, None]:
    """
    Count and time one projector operation.

    The outcome label is "success" or "error"; exceptions propagate.
    """
    start = time.perf_counter()
    try:
        yield
    except Exception:
        OPERATIONS_TOTAL.labels(operation=operation, outcome="error").inc()
        raise
    else:
        OPERATIONS_TOTAL.labels(operation=operation, outcome="success").inc()
    finally:
        OPERATION_DURATION.labels(operation=operation).observe(time.perf_counter() - start)
