from __future__ import annotations

import os
import stat
from pathlib import Path

import pytest

from gpustat_exporter.collector.metrics import GpustatMetrics
from gpustat_exporter.collector.parsers import parse_report

DATA_DIR = Path(__file__).parent / "data"


@pytest.fixture
def sample_report() -> str:
    return (DATA_DIR / "gpustat_sample.txt").read_text(encoding="utf-8")


@pytest.fixture
def sample_snapshot(sample_report):
    return parse_report(sample_report)


@pytest.fixture
def metrics() -> GpustatMetrics:
    return GpustatMetrics()


@pytest.fixture
def fake_gpustat(tmp_path, sample_report):
    """Write an executable that prints `report` and exits with `code`."""

    def make(report: str = sample_report, code: int = 0) -> str:
        report_file = tmp_path / "report.txt"
        report_file.write_text(report, encoding="utf-8")
        script = tmp_path / "gpustat"
        script.write_text(
            "#!/bin/sh\n"
            f"cat '{report_file}'\n"
            f"[ {code} -eq 0 ] || echo 'NVML: driver not loaded' >&2\n"
            f"exit {code}\n",
            encoding="utf-8",
        )
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return str(script)

    return make


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for key in list(os.environ):
        if key.startswith("GPUSTAT_EXPORTER_"):
            monkeypatch.delenv(key)
