"""
Prometheus metrics for the routeflow service.
"""
import os

import psutil
import structlog
from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, Info

log = structlog.get_logger()


class Metrics:
    """
    Registry-scoped metrics: HTTP traffic, rule evaluations, graph
    conversions and process resources.
    """

    def __init__(self, service_name: str = "routeflow", version: str = "0.1.0", registry=None):
        self.service_name = service_name
        self.version = version
        self.registry = registry or CollectorRegistry()

        # HTTP
        self.http_requests_total = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["service", "method", "path", "status"],
            registry=self.registry,
        )
        self.http_request_duration = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["service", "method", "path"],
            registry=self.registry,
        )
        self.http_requests_active = Gauge(
            "http_requests_active",
            "Number of in-flight HTTP requests",
            registry=self.registry,
        )

        self.app_info = Info("app", "Application information", registry=self.registry)
        self.app_info.info({"service": service_name, "version": version})
        self.app_up = Gauge(
            "app_up",
            "Application up status (1=up, 0=down)",
            ["service", "version"],
            registry=self.registry,
        )
        self.app_up.labels(service=service_name, version=version).set(1)

        # Rules
        self.evaluations_total = Counter(
            "routeflow_evaluations_total",
            "Rule-set evaluations by outcome",
            ["outcome"],
            registry=self.registry,
        )
        self.evaluation_duration = Histogram(
            "routeflow_evaluation_duration_seconds",
            "Time spent evaluating a rule set",
            buckets=(0.0005, 0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25),
            registry=self.registry,
        )
        self.rule_errors_total = Counter(
            "routeflow_rule_errors_total",
            "Rules whose evaluation raised and was recorded in the trace",
            registry=self.registry,
        )
        self.graph_conversions_total = Counter(
            "routeflow_graph_conversions_total",
            "Tree/graph conversions by direction and status",
            ["direction", "status"],
            registry=self.registry,
        )

        self._setup_process_metrics()

    def _setup_process_metrics(self):
        self._process = psutil.Process(os.getpid())
        self._last_cpu_total = 0.0

        self.process_cpu_seconds = Counter(
            "process_cpu_seconds_total",
            "Total CPU time consumed by the process",
            ["service"],
            registry=self.registry,
        )
        self.process_memory_bytes = Gauge(
            "process_resident_memory_bytes",
            "Resident memory size in bytes",
            ["service"],
            registry=self.registry,
        )
        self.process_open_fds = Gauge(
            "process_open_fds",
            "Number of open file descriptors",
            ["service"],
            registry=self.registry,
        )
        self.update_system_metrics()

    def update_system_metrics(self):
        """Refresh process gauges from psutil."""
        try:
            cpu_times = self._process.cpu_times()
            cpu_total = cpu_times.user + cpu_times.system
            cpu_diff = cpu_total - self._last_cpu_total
            if cpu_diff > 0:
                self.process_cpu_seconds.labels(service=self.service_name).inc(cpu_diff)
            self._last_cpu_total = cpu_total

            self.process_memory_bytes.labels(service=self.service_name).set(self._process.memory_info().rss)

            # num_fds() is POSIX only
            if hasattr(self._process, "num_fds"):
                self.process_open_fds.labels(service=self.service_name).set(self._process.num_fds())
        except psutil.Error as e:
            log.warning("metrics.process_update_failed", error=str(e))

    def record_evaluation(self, matched: bool, duration_seconds: float, rule_errors: int = 0):
        self.evaluations_total.labels(outcome="matched" if matched else "fallback").inc()
        self.evaluation_duration.observe(duration_seconds)
        if rule_errors:
            self.rule_errors_total.inc(rule_errors)

    def record_conversion(self, direction: str, ok: bool):
        """direction is "to_graph" or "to_rule"."""
        self.graph_conversions_total.labels(direction=direction, status="ok" if ok else "error").inc()


_metrics: Metrics | None = None


def set_metrics(metrics: Metrics | None):
    """Install the process-wide Metrics used by the API routes."""
    global _metrics
    _metrics = metrics


def get_metrics() -> Metrics | None:
    return _metrics
