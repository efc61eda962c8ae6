"""
Prometheus metrics definitions for the SDR Image API.

Naming conventions: snake_case, image_api_ prefix.
"""

from prometheus_client import Counter, Gauge, Histogram

# ==============================================================================
# COUNTERS
# ==============================================================================

sync_cycles_total = Counter(
    "image_api_sync_cycles_total",
    "Sync cycle invocations by outcome",
    ["status"],
    # status: completed, skipped, busy, failed
)

images_created_total = Counter(
    "image_api_images_created_total",
    "Image records created by the sync engine",
)

images_existing_total = Counter(
    "image_api_images_existing_total",
    "Image records skipped because the dedup key already existed",
)

sync_errors_total = Counter(
    "image_api_sync_errors_total",
    "Recoverable errors during sync",
    ["stage"],
    # stage: sync_state, rate_limit, list_repos, lookup, create
)

reads_total = Counter(
    "image_api_reads_total",
    "Read API queries",
    ["endpoint", "status"],
    # status: success, store_error
)

# ==============================================================================
# GAUGES
# ==============================================================================

last_sync_timestamp = Gauge(
    "image_api_last_sync_timestamp_seconds",
    "Unix time of the last completed sync cycle",
)

github_rate_limit = Gauge(
    "image_api_github_rate_limit",
    "GitHub core rate limit reported by the per-cycle probe",
    ["kind"],
    # kind: limit, remaining
)

# ==============================================================================
# HISTOGRAMS
# ==============================================================================

sync_duration_seconds = Histogram(
    "image_api_sync_duration_seconds",
    "Duration of completed sync cycles",
    buckets=[1, 5, 15, 30, 60, 120, 300, 600],
)
