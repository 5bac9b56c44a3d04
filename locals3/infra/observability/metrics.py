from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

# Labelled by S3 operation name rather than path, which would carry bucket and key.
REQUESTS = Counter(
    "s3_requests_total",
    "Total S3 gateway requests",
    ["method", "operation", "status"],
)

LATENCY = Histogram(
    "s3_request_duration_seconds",
    "Request latency in seconds",
    ["method", "operation"],
)


def render_metrics() -> tuple[bytes, str]:
    return generate_latest(), CONTENT_TYPE_LATEST
