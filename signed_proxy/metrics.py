"""Prometheus metrics for upstream traffic."""

from prometheus_client import Counter, Histogram

upstream_requests_total = Counter(
    'signed_proxy_upstream_requests_total',
    'Total signed requests sent upstream',
    ['endpoint', 'action', 'result']
)

upstream_request_duration_seconds = Histogram(
    'signed_proxy_upstream_request_duration_seconds',
    'Upstream request duration in seconds',
    ['endpoint'],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 3.0]
)

observe_polls_per_sync = Histogram(
    'signed_proxy_observe_polls_per_sync',
    'Observe calls issued while a begin call was in flight',
    buckets=[0, 1, 5, 10, 50, 100, 500, 1000]
)

audit_entries_fetched_total = Counter(
    'signed_proxy_audit_entries_fetched_total',
    'Audit log entries returned by the upstream'
)

audit_resets_total = Counter(
    'signed_proxy_audit_resets_total',
    'Audit cursor reset attempts',
    ['result']
)
