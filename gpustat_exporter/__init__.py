"""gpustat_exporter
Prometheus exporter that republishes `gpustat` reports as gauges.
"""

__version__ = "0.1.0"
