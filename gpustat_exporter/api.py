# gpustat_exporter/api.py
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.responses import HTMLResponse, PlainTextResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from gpustat_exporter import __version__
from gpustat_exporter.collector.poller import Collector
from gpustat_exporter.config import Settings

# ---------- landing page ----------------------------------------------
INDEX_TEMPLATE = """\
<html>
<head><title>GPUstat Exporter</title></head>
<body>
<h1>GPUstat Exporter</h1>
<p><a href='{metrics_path}'>Metrics</a></p>
<h2>Build Info</h2>
<ul>
<li>Version: {version}</li>
<li>Scrape Interval: {interval}s</li>
<li>GPUstat Path: {gpustat_path}</li>
</ul>
</body>
</html>"""


# ---------- FastAPI ----------------------------------------------------
def create_app(
    collector: Optional[Collector] = None,
    settings: Optional[Settings] = None,
    start_collector: bool = True,
) -> FastAPI:
    """Wire HTTP routes around a collector.

    The app only reads the collector's registry; the collection thread is
    started and stopped with the app's lifespan.
    """
    settings = settings or Settings()
    collector = collector or Collector(settings.gpustat_path, settings.scrape_interval)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        if start_collector:
            collector.start()
        try:
            yield
        finally:
            collector.stop()

    app = FastAPI(title="GPUstat Exporter", version=__version__, lifespan=lifespan)
    app.state.collector = collector
    app.state.settings = settings

    @app.get(settings.metrics_path)
    def metrics() -> Response:
        return Response(generate_latest(collector.registry), media_type=CONTENT_TYPE_LATEST)

    @app.get("/", response_class=HTMLResponse)
    def index() -> str:
        return INDEX_TEMPLATE.format(
            metrics_path=settings.metrics_path,
            version=__version__,
            interval=f"{settings.scrape_interval:g}",
            gpustat_path=settings.gpustat_path,
        )

    @app.get("/version", response_class=PlainTextResponse)
    def version() -> str:
        return f"{__version__}\n"

    @app.get("/health", response_class=PlainTextResponse)
    def health() -> str:
        return "OK"

    return app
