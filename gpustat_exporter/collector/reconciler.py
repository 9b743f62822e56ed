# gpustat_exporter/collector/reconciler.py
"""
Publish a Snapshot into the gauge families.

Per-GPU families have one series per GPU and are simply cleared and
rebuilt. User and process memory families carry one series per user or
process, so they are reconciled instead: new values are written first,
then every label tuple that was published last cycle but is absent now
is deleted. A concurrent scrape therefore sees the old set, the new set
or a superset of both, never a gap.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Tuple

from .metrics import PROCESS_LABELS, USER_LABELS, GpustatMetrics
from .models import Snapshot

logger = logging.getLogger(__name__)

UserKey = Tuple[str, str, str, str]
ProcessKey = Tuple[str, str, str, str, str]
Published = Dict[str, Dict[tuple, float]]


@dataclass(frozen=True)
class LabelSets:
    """Dynamic label tuples published by one cycle."""

    user_memory: FrozenSet[UserKey] = field(default_factory=frozenset)
    process_memory: FrozenSet[ProcessKey] = field(default_factory=frozenset)


def process_memory_label(memory_mb: float) -> str:
    """Whole megabytes with an `M` suffix, e.g. 1224.0 -> "1224M"."""
    return f"{memory_mb:.0f}M"


def reconcile(
    metrics: GpustatMetrics, previous: LabelSets, snapshot: Snapshot
) -> Tuple[LabelSets, Published]:
    """Apply one snapshot; return the new label sets and every value written."""
    published: Published = {}

    def put(gauge, name: str, labels: tuple, value: float) -> None:
        gauge.labels(*labels).set(value)
        published.setdefault(name, {})[labels] = value

    for gauge in metrics.bounded:
        gauge.clear()

    host = snapshot.hostname
    if snapshot.driver_version:
        put(metrics.driver_info, "nvidia_driver_info", (host, snapshot.driver_version), 1)

    users: set = set()
    processes: set = set()

    for gpu in snapshot.gpus:
        gpu_key = (host, gpu.index, gpu.name)

        put(metrics.temperature, "gpustat_temperature_celsius", gpu_key, gpu.temperature_c)
        put(metrics.utilization, "gpustat_utilization_percent", gpu_key, gpu.utilization_pct)
        put(metrics.memory_used, "gpustat_memory_used_megabytes", gpu_key, gpu.memory_used_mb)
        put(metrics.memory_total, "gpustat_memory_total_megabytes", gpu_key, gpu.memory_total_mb)

        mem_util = gpu.memory_utilization_pct
        if mem_util is not None:
            put(metrics.memory_utilization, "gpustat_memory_utilization_percent", gpu_key, mem_util)

        put(metrics.process_count, "gpustat_process_count", gpu_key, float(len(gpu.processes)))

        for proc in gpu.processes:
            key = gpu_key + (proc.username, process_memory_label(proc.memory_mb))
            processes.add(key)
            put(metrics.process_memory, "gpustat_process_memory_megabytes", key, proc.memory_mb)

        for username, memory in gpu.user_memory().items():
            key = gpu_key + (username,)
            users.add(key)
            put(metrics.user_memory, "gpustat_user_memory_megabytes", key, memory)

    current = LabelSets(user_memory=frozenset(users), process_memory=frozenset(processes))

    # stale deletion strictly after the new values are in place
    for key in sorted(previous.user_memory - current.user_memory):
        _remove(metrics.user_memory, USER_LABELS, key, "user memory")
    for key in sorted(previous.process_memory - current.process_memory):
        _remove(metrics.process_memory, PROCESS_LABELS, key, "process memory")

    return current, published


def _remove(gauge, names: list, labels: tuple, what: str) -> None:
    gauge.remove(*labels)
    logger.info(
        "Deleted stale %s metric: %s",
        what,
        " ".join(f"{k}={v}" for k, v in zip(names, labels)),
    )


class MetricReconciler:
    """Owns the label sets carried from one collection cycle to the next.

    Only the collection thread calls `apply`; scrapers read the registry.
    """

    def __init__(self, metrics: GpustatMetrics | None = None) -> None:
        self.metrics = metrics if metrics is not None else GpustatMetrics()
        self.previous = LabelSets()

    def apply(self, snapshot: Snapshot) -> Published:
        self.previous, published = reconcile(self.metrics, self.previous, snapshot)
        return published
