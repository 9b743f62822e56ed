"""gpustat_exporter.collector
GPU metrics collector built around the `gpustat` CLI.

Modules
-------
models    : frozen Snapshot / GPU / Process types
parsers   : turn the plain-text `gpustat` report into a Snapshot
metrics   : gauge families registered on a per-instance Prometheus registry
reconciler: publish a Snapshot, delete series that disappeared since last cycle
poller    : run `gpustat`, drive one collection cycle, timer loop
errors    : exception hierarchy shared by the modules above
"""

__all__ = ["models", "parsers", "metrics", "reconciler", "poller", "errors"]
