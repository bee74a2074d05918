import threading

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram


class MetricsUpdater:
    """
    records cache and upstream activity as Prometheus metrics.
     - cache_lookups_total: counts cache lookups, labeled by
     result (hit/miss).
     - upstream_fetch_duration_seconds: time spent in the upstream
     fetch of one window, aggregation excluded.
     - upstream_errors_total: failed fetches, labeled by error kind.
     - line_items_total: line items received from the upstream.
     - last_fetch_success_timestamp_seconds: per subscription.
    """

    def __init__(self, registry: "CollectorRegistry" = REGISTRY) -> "None":
        self._cache_lookups: "Counter" = Counter(
            "azurecosts_cache_lookups_total",
            "Total cache lookups by result",
            ["result"],
            registry=registry,
        )
        self._fetch_duration: "Histogram" = Histogram(
            "azurecosts_upstream_fetch_duration_seconds",
            "Duration of upstream usage details fetches",
            registry=registry,
        )
        self._upstream_errors: "Counter" = Counter(
            "azurecosts_upstream_errors_total",
            "Total number of failed upstream fetches by error kind",
            ["kind"],
            registry=registry,
        )
        self._line_items: "Counter" = Counter(
            "azurecosts_line_items_total",
            "Total line items received from the upstream",
            registry=registry,
        )
        self._last_fetch_success: "Gauge" = Gauge(
            "azurecosts_last_fetch_success_timestamp_seconds",
            "Unix timestamp of last successful fetch per subscription",
            ["subscription"],
            registry=registry,
        )

    def inc_cache_hit(self) -> "None":
        self._cache_lookups.labels(result="hit").inc()

    def inc_cache_miss(self) -> "None":
        self._cache_lookups.labels(result="miss").inc()

    def observe_fetch_duration(self, duration_seconds: "float") -> "None":
        self._fetch_duration.observe(duration_seconds)

    def inc_upstream_error(self, kind: "str") -> "None":
        self._upstream_errors.labels(kind=kind).inc()

    def inc_line_items(self, count: "int") -> "None":
        self._line_items.inc(count)

    def set_last_fetch_success(self, subscription_id: "str", timestamp: "float") -> "None":
        self._last_fetch_success.labels(subscription=subscription_id).set(timestamp)


_default_updater: "MetricsUpdater | None" = None
_default_lock: "threading.Lock" = threading.Lock()


def default_metrics() -> "MetricsUpdater":
    """
    returns the process-wide updater bound to the global registry,
    creating it on first use. Data sources built without an explicit
    updater share it, since the global registry rejects a second
    registration of the same metric names.
    """
    global _default_updater
    with _default_lock:
        if _default_updater is None:
            _default_updater = MetricsUpdater()
        return _default_updater
