"""Prometheus metrics for sync and upload observability.

Counters and histograms at each stage of the upload path.
The host app decides whether and how to expose them.
"""

from prometheus_client import Counter, Histogram

# Request executor
api_requests_total = Counter(
    "healthsync_api_requests_total",
    "Total API requests by outcome",
    ["endpoint", "method", "status"],  # status: HTTP code or error kind
)

api_request_duration_seconds = Histogram(
    "healthsync_api_request_duration_seconds",
    "Duration of API calls",
    ["endpoint"],
)

token_refresh_total = Counter(
    "healthsync_token_refresh_total",
    "Profile token refresh attempts",
    ["outcome"],  # outcome: success, failure
)

# Batch builder
samples_skipped_total = Counter(
    "healthsync_samples_skipped_total",
    "Samples dropped by validation before upload",
    ["stream", "rule"],
)

# Uploader
chunk_uploads_total = Counter(
    "healthsync_chunk_uploads_total",
    "Chunks sent to the log endpoints",
    ["stream", "status"],  # status: uploaded, failed
)

readings_uploaded_total = Counter(
    "healthsync_readings_uploaded_total",
    "Readings confirmed uploaded",
    ["stream"],
)

sync_pass_duration_seconds = Histogram(
    "healthsync_sync_pass_duration_seconds",
    "Duration of one synchronization pass for a stream",
    ["stream"],
)

# Error reporter
error_reports_total = Counter(
    "healthsync_error_reports_total",
    "Diagnostic events by delivery outcome",
    ["status"],  # status: sent, dropped, failed
)
