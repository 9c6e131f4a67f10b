"""Prometheus metrics for the plugin lifecycle.

Provides ``KeeperMetrics``: counters for health checks, catalog fetches,
installs and updates plus a download latency histogram.
"""

from __future__ import annotations

from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Histogram


class KeeperMetrics:
    """Prometheus collectors for pluginkeeper.

    Metrics exposed:

    * ``health_checks_total``: counter labelled by ``result`` (healthy/unhealthy)
    * ``catalog_fetches_total``: counter labelled by ``result``
    * ``installs_total``: counter labelled by ``result``
    * ``updates_total``: counter labelled by ``result``
      (committed/rolled_back/rollback_failed/aborted)
    * ``download_seconds``: histogram of artifact download durations

    Args:
        prefix: Metric name prefix. Defaults to ``pluginkeeper``.
        registry: Registry to register on. A private registry is created when
            omitted so several instances can coexist; pass
            ``prometheus_client.REGISTRY`` to expose them on the default one.
    """

    def __init__(
        self,
        prefix: str = "pluginkeeper",
        registry: Optional[CollectorRegistry] = None,
    ) -> None:
        self.registry = registry if registry is not None else CollectorRegistry()
        self.health_checks_total = Counter(
            f"{prefix}_health_checks_total",
            "Plugin server health checks",
            ["result"],
            registry=self.registry,
        )
        self.catalog_fetches_total = Counter(
            f"{prefix}_catalog_fetches_total",
            "Catalog fetches from the plugin server",
            ["result"],
            registry=self.registry,
        )
        self.installs_total = Counter(
            f"{prefix}_installs_total",
            "Plugin artifact installs",
            ["result"],
            registry=self.registry,
        )
        self.updates_total = Counter(
            f"{prefix}_updates_total",
            "Plugin update transactions",
            ["result"],
            registry=self.registry,
        )
        self.download_seconds = Histogram(
            f"{prefix}_download_seconds",
            "Artifact download duration in seconds",
            buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
            registry=self.registry,
        )

    def record_health_check(self, healthy: bool) -> None:
        self.health_checks_total.labels(result="healthy" if healthy else "unhealthy").inc()

    def record_catalog_fetch(self, result: str) -> None:
        """Count a catalog fetch with outcome ``ok``, ``error`` or ``not_persisted``."""
        self.catalog_fetches_total.labels(result=result).inc()

    def record_install(self, result: str) -> None:
        self.installs_total.labels(result=result).inc()

    def record_update(self, result: str) -> None:
        self.updates_total.labels(result=result).inc()

    def observe_download(self, duration_seconds: float) -> None:
        self.download_seconds.observe(duration_seconds)

    def sample(self, name: str, **labels: str) -> float:
        """Return the current value of a sample, ``0.0`` if never recorded.

        Args:
            name: Full sample name, e.g. ``pluginkeeper_installs_total``.
            labels: Label values identifying the sample.
        """
        value = self.registry.get_sample_value(name, labels)
        return value if value is not None else 0.0
