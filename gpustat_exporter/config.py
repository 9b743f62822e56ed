# gpustat_exporter/config.py
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Tuple

# *** How to override at runtime:
# export GPUSTAT_EXPORTER_LISTEN_ADDRESS=:9101
# export GPUSTAT_EXPORTER_METRICS_PATH=/metrics
# export GPUSTAT_EXPORTER_GPUSTAT_PATH=/usr/bin/gpustat
# export GPUSTAT_EXPORTER_SCRAPE_INTERVAL=15     # seconds
# export GPUSTAT_EXPORTER_LOG_LEVEL=DEBUG
# Command line flags win over the environment.

ENV_PREFIX = "GPUSTAT_EXPORTER_"
LOG_FORMAT = "%(asctime)s  %(levelname)s %(message)s"


def _env(name: str, default: str) -> str:
    return os.getenv(ENV_PREFIX + name, default)


@dataclass(frozen=True)
class Settings:
    listen_address: str = field(default_factory=lambda: _env("LISTEN_ADDRESS", ":9101"))
    metrics_path: str = field(default_factory=lambda: _env("METRICS_PATH", "/metrics"))
    gpustat_path: str = field(default_factory=lambda: _env("GPUSTAT_PATH", "gpustat"))
    scrape_interval: float = field(default_factory=lambda: float(_env("SCRAPE_INTERVAL", "30")))
    log_level: str = field(default_factory=lambda: _env("LOG_LEVEL", "INFO"))

    def __post_init__(self) -> None:
        if self.scrape_interval <= 0:
            raise ValueError(f"scrape interval must be positive, got {self.scrape_interval}")
        if not self.metrics_path.startswith("/"):
            raise ValueError(f"metrics path must start with '/', got {self.metrics_path!r}")


def split_listen_address(address: str) -> Tuple[str, int]:
    """`:9101` -> ("0.0.0.0", 9101); `127.0.0.1:8000` -> ("127.0.0.1", 8000)."""
    host, sep, port = address.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"invalid listen address {address!r}, expected [host]:port")
    return host or "0.0.0.0", int(port)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
