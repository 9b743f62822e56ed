from __future__ import annotations

from typing import Optional

from prometheus_client import CollectorRegistry, Gauge

NAMESPACE = "gpustat"

GPU_LABELS = ["hostname", "gpu_index", "gpu_name"]
USER_LABELS = GPU_LABELS + ["username"]
PROCESS_LABELS = USER_LABELS + ["process_memory"]
DRIVER_LABELS = ["hostname", "version"]


class GpustatMetrics:
    """All gauge families the exporter publishes, bound to one registry.

    A fresh CollectorRegistry per instance keeps tests isolated from each
    other and from the process-wide default registry.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        self.registry = registry if registry is not None else CollectorRegistry()

        def gauge(name: str, doc: str, labels=(), namespace: str = NAMESPACE) -> Gauge:
            return Gauge(name, doc, list(labels), namespace=namespace, registry=self.registry)

        # one series per GPU, rebuilt every cycle
        self.temperature = gauge("temperature_celsius", "GPU temperature in Celsius", GPU_LABELS)
        self.utilization = gauge("utilization_percent", "GPU utilization percentage", GPU_LABELS)
        self.memory_used = gauge("memory_used_megabytes", "GPU memory used in megabytes", GPU_LABELS)
        self.memory_total = gauge("memory_total_megabytes", "GPU memory total in megabytes", GPU_LABELS)
        self.memory_utilization = gauge(
            "memory_utilization_percent", "GPU memory utilization percentage", GPU_LABELS
        )
        self.process_count = gauge("process_count", "Number of processes running on GPU", GPU_LABELS)
        self.driver_info = gauge("driver_info", "NVIDIA driver version info", DRIVER_LABELS, namespace="nvidia")

        # label sets depend on who is running what; reconciled, never cleared
        self.user_memory = gauge("user_memory_megabytes", "Total memory used by user on GPU", USER_LABELS)
        self.process_memory = gauge("process_memory_megabytes", "Memory used by process on GPU", PROCESS_LABELS)

        self.scrape_success = gauge("scrape_success", "Whether the last scrape was successful")
        self.scrape_duration = gauge("scrape_duration_seconds", "Duration of the last scrape in seconds")

    @property
    def bounded(self) -> tuple:
        """Families that are cleared and fully rebuilt every cycle."""
        return (
            self.temperature,
            self.utilization,
            self.memory_used,
            self.memory_total,
            self.memory_utilization,
            self.process_count,
            self.driver_info,
        )

    def value(self, name: str, labels: Optional[dict] = None) -> Optional[float]:
        """Current value of one sample, None if the series is not published."""
        return self.registry.get_sample_value(name, labels or {})
