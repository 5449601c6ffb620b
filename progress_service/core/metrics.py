"""Prometheus metric inventory.

Every metric the service exports is declared here so there is a single
list to consult when building dashboards.  Modules import the metric they
own and increment it at the point where the event happens.

Counters only go up and are read with rate(); the gauge tracks in-flight
requests; the histogram feeds histogram_quantile() for latency percentiles.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Learning-progress metrics
# ---------------------------------------------------------------------------

MODULE_COMPLETIONS = Counter(
    "module_completions_total",
    "Module completion events recorded against course progress",
    ["policy"],  # simple_ratio | quiz_gated
)

COURSE_COMPLETIONS = Counter(
    "course_completions_total",
    "Course progress records that transitioned to completed",
)

ACHIEVEMENTS_AWARDED = Counter(
    "achievements_awarded_total",
    "Achievements unlocked by type",
    ["type"],
)

ENROLLMENTS = Counter(
    "enrollments_total",
    "Enrollment changes",
    ["action"],  # enroll | unenroll
)

CACHE_OPERATIONS = Counter(
    "cache_operations_total",
    "Cache get operations by result",
    ["operation"],  # hit | miss
)
