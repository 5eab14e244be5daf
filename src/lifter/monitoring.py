"""Monitoring configuration for the cache layer."""
from prometheus_client import Counter, start_http_server

# Cache metrics
cache_operations = Counter(
    "lifter_cache_operations_total",
    "Total number of cache collection operations",
    ["collection", "operation"],
)

cache_expired_checks = Counter(
    "lifter_cache_expired_checks_total",
    "Total number of expiry checks that reported a stale collection",
    ["collection"],
)

# Storage metrics
storage_errors = Counter(
    "lifter_storage_errors_total",
    "Total number of failed storage backend operations",
    ["operation"],
)

# Program cycle metrics
cycle_validation_errors = Counter(
    "lifter_cycle_validation_errors_total",
    "Total number of rejected program cycle operations",
    ["error_type"],
)


def start_monitoring(port: int = 9090) -> None:
    """Start the Prometheus metrics server."""
    start_http_server(port)
