"""Prometheus metrics for the media service.

Tracks HTTP traffic plus video streaming and quality ladder activity.
"""

import os

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
    multiprocess,
)

# Create a custom registry for our metrics
REGISTRY = CollectorRegistry()


# ============================================
# Application Info
# ============================================
APP_INFO = Info(
    "interviews_media_app",
    "Application information",
    registry=REGISTRY,
)


# ============================================
# HTTP Request Metrics
# ============================================
HTTP_REQUESTS_TOTAL = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
    registry=REGISTRY,
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
    registry=REGISTRY,
)

HTTP_REQUESTS_IN_PROGRESS = Gauge(
    "http_requests_in_progress",
    "Number of HTTP requests currently in progress",
    ["method", "endpoint"],
    registry=REGISTRY,
)


# ============================================
# Video Streaming Metrics
# ============================================
VIDEO_STREAM_RESPONSES_TOTAL = Counter(
    "video_stream_responses_total",
    "Video stream responses by status code",
    ["status_code"],
    registry=REGISTRY,
)

VIDEO_STREAM_BYTES_TOTAL = Counter(
    "video_stream_bytes_total",
    "Video bytes scheduled for delivery (full files and partial spans)",
    registry=REGISTRY,
)

VIDEO_QUALITY_LADDER_SIZE = Histogram(
    "video_quality_ladder_size",
    "Number of quality variants offered per ladder request",
    buckets=[1, 2, 3, 4, 5, 6, 7, 8],
    registry=REGISTRY,
)


def get_metrics() -> bytes:
    """Generate latest metrics in Prometheus format.

    Under gunicorn with several workers (PROMETHEUS_MULTIPROC_DIR set) the
    samples of every worker are aggregated into a registry built per scrape.
    """
    if "PROMETHEUS_MULTIPROC_DIR" in os.environ:
        registry = CollectorRegistry()
        multiprocess.MultiProcessCollector(registry)
        return generate_latest(registry)
    return generate_latest(REGISTRY)


def get_content_type() -> str:
    """Get the content type for Prometheus metrics."""
    return CONTENT_TYPE_LATEST


def set_app_info(version: str, environment: str) -> None:
    """Set application info metrics.

    Args:
        version: Application version
        environment: Deployment environment
    """
    APP_INFO.info({
        "version": version,
        "environment": environment,
    })
