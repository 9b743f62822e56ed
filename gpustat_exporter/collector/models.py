# gpustat_exporter/collector/models.py
from __future__ import annotations

from typing import Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict


# ---------- snapshot schema --------------------------------------------
class Process(BaseModel):
    model_config = ConfigDict(frozen=True)

    username: str
    memory_mb: float = 0.0


class GPU(BaseModel):
    """One `[N] name | temp, util | used / total MB | procs` line."""

    model_config = ConfigDict(frozen=True)

    index: str = ""          # verbatim from the report, never renumbered
    name: str = ""
    temperature_c: float = 0.0
    utilization_pct: float = 0.0
    memory_used_mb: float = 0.0
    memory_total_mb: float = 0.0
    processes: Tuple[Process, ...] = ()

    @property
    def memory_utilization_pct(self) -> Optional[float]:
        """used / total * 100, or None when the total is unknown (0)."""
        if self.memory_total_mb > 0:
            return self.memory_used_mb / self.memory_total_mb * 100
        return None

    def user_memory(self) -> Dict[str, float]:
        """Sum process memory per username on this GPU (first-seen order)."""
        totals: Dict[str, float] = {}
        for proc in self.processes:
            totals[proc.username] = totals.get(proc.username, 0.0) + proc.memory_mb
        return totals


class Snapshot(BaseModel):
    """Everything one `gpustat` run reported."""

    model_config = ConfigDict(frozen=True)

    hostname: str = ""
    driver_version: str = ""
    gpus: Tuple[GPU, ...] = ()
