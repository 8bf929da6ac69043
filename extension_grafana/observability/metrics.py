"""
Observability Metrics - Prometheus metrics of the extension itself

Kept in a dedicated registry so that several app instances (tests) do not
collide in the process-wide default registry.
"""

import logging

from prometheus_client import CollectorRegistry, Counter, Gauge, generate_latest, CONTENT_TYPE_LATEST

logger = logging.getLogger(__name__)


class ExtensionMetrics:
    """Counters and gauges for discovery, checks and annotations."""

    def __init__(self, namespace: str = "grafana_extension"):
        self.registry = CollectorRegistry()

        self.discovery_runs = Counter(
            f"{namespace}_discovery_runs_total",
            "Alert rule discovery cycles",
            ["result"],  # complete, partial
            registry=self.registry,
        )
        self.discovered_targets = Gauge(
            f"{namespace}_discovered_targets",
            "Targets in the last discovery snapshot",
            registry=self.registry,
        )
        self.check_polls = Counter(
            f"{namespace}_check_polls_total",
            "Alert rule state check polls by severity bucket",
            ["state"],
            registry=self.registry,
        )
        self.annotation_writes = Counter(
            f"{namespace}_annotation_writes_total",
            "Annotation dispatch outcomes",
            ["outcome"],
            registry=self.registry,
        )

    def record_discovery(self, target_count: int, complete: bool) -> None:
        self.discovery_runs.labels(result="complete" if complete else "partial").inc()
        self.discovered_targets.set(target_count)

    def record_check_poll(self, state: str) -> None:
        self.check_polls.labels(state=state or "unknown").inc()

    def record_annotation(self, outcome: str) -> None:
        self.annotation_writes.labels(outcome=outcome).inc()

    def exposition(self) -> bytes:
        return generate_latest(self.registry)


__all__ = ["ExtensionMetrics", "CONTENT_TYPE_LATEST"]
