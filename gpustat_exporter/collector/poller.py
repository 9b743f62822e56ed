# gpustat_exporter/collector/poller.py
from __future__ import annotations

import logging
import subprocess
import threading
import time
from typing import Callable, Optional

from .errors import CollectionError, GpustatInvocationError
from .metrics import GpustatMetrics
from .models import Snapshot
from .parsers import parse_report
from .reconciler import MetricReconciler

logger = logging.getLogger(__name__)

POLL_INTERVAL = 30  # seconds


def run_gpustat(path: str = "gpustat") -> bytes:
    """Run `gpustat` without arguments and return its stdout.

    No timeout: a hung gpustat blocks the collection loop until it returns.
    """
    try:
        proc = subprocess.run([path], check=False, capture_output=True)
    except OSError as exc:  # FileNotFoundError, PermissionError, ...
        raise GpustatInvocationError(f"failed to execute gpustat: {exc}") from exc

    if proc.returncode != 0:
        stderr = proc.stderr.decode("utf-8", errors="replace").strip()
        raise GpustatInvocationError(
            f"failed to execute gpustat: exit status {proc.returncode}: {stderr}",
            returncode=proc.returncode,
        )
    return proc.stdout


class Collector:
    """Runs collection cycles, one at a time.

    `collect_once` holds `_cycle_lock` for the whole cycle, so a manual call
    and the timer thread can never interleave their writes.
    """

    def __init__(
        self,
        gpustat_path: str = "gpustat",
        interval: float = POLL_INTERVAL,
        metrics: Optional[GpustatMetrics] = None,
        runner: Callable[[str], bytes] = run_gpustat,
    ) -> None:
        self.gpustat_path = gpustat_path
        self.interval = interval
        self.metrics = metrics if metrics is not None else GpustatMetrics()
        self.reconciler = MetricReconciler(self.metrics)
        self.last_snapshot: Optional[Snapshot] = None
        self._runner = runner
        self._cycle_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def registry(self):
        return self.metrics.registry

    def collect_once(self) -> bool:
        with self._cycle_lock:
            start = time.monotonic()
            try:
                snapshot = parse_report(self._runner(self.gpustat_path))
            except CollectionError as exc:
                self.metrics.scrape_success.set(0)
                logger.error("Error collecting metrics: %s", exc)
                return False

            self.reconciler.apply(snapshot)
            self.last_snapshot = snapshot

            duration = time.monotonic() - start
            self.metrics.scrape_duration.set(duration)
            self.metrics.scrape_success.set(1)
            logger.info(
                "Successfully scraped %d GPUs from %s in %.3fs",
                len(snapshot.gpus), snapshot.hostname, duration,
            )
            return True

    # ---------- timer loop ------------------------------------------------
    def start(self) -> None:
        if self._thread is not None:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name="gpustat-collector", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 2.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def _tick(self) -> None:
        try:
            self.collect_once()
        except Exception:
            self.metrics.scrape_success.set(0)
            logger.exception("Collector error")

    def _loop(self) -> None:
        # first cycle right away, then `interval` after each finished cycle
        self._tick()
        while not self._stop_event.wait(self.interval):
            self._tick()
