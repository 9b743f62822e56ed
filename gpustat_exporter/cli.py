#!/usr/bin/env python
"""
gpustat-exporter serve | once | check

Example:
    gpustat-exporter serve --web.listen-address :9101 --scrape.interval 15
    gpustat-exporter once --gpustat.path /usr/bin/gpustat
    gpustat-exporter check --url http://gpu-host-01:9101
"""
from __future__ import annotations

import dataclasses
import logging
import shutil
import sys
from typing import Optional

import requests
import typer
import uvicorn

from gpustat_exporter import __version__
from gpustat_exporter.api import create_app
from gpustat_exporter.collector.poller import Collector
from gpustat_exporter.config import Settings, configure_logging, split_listen_address

logger = logging.getLogger("gpustat_exporter")

app = typer.Typer(add_completion=False, help="Prometheus exporter for gpustat.")


def _settings(**overrides) -> Settings:
    """Environment defaults, then whatever flags were actually given."""
    given = {k: v for k, v in overrides.items() if v is not None}
    try:
        return dataclasses.replace(Settings(), **given)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


@app.command()
def serve(
    listen_address: Optional[str] = typer.Option(
        None, "--web.listen-address", help="Address to listen on for web interface and telemetry"
    ),
    metrics_path: Optional[str] = typer.Option(
        None, "--web.telemetry-path", help="Path under which to expose metrics"
    ),
    gpustat_path: Optional[str] = typer.Option(None, "--gpustat.path", help="Path to gpustat binary"),
    scrape_interval: Optional[float] = typer.Option(
        None, "--scrape.interval", help="Seconds between gpustat scrapes"
    ),
    log_level: Optional[str] = typer.Option(None, "--log.level", help="DEBUG, INFO, WARNING, ..."),
):
    """Collect in the background and serve /metrics."""
    settings = _settings(
        listen_address=listen_address,
        metrics_path=metrics_path,
        gpustat_path=gpustat_path,
        scrape_interval=scrape_interval,
        log_level=log_level,
    )
    configure_logging(settings.log_level)

    if shutil.which(settings.gpustat_path) is None:
        logger.error("gpustat command not found. Please install it: sudo apt install gpustat")
        raise typer.Exit(code=1)

    try:
        host, port = split_listen_address(settings.listen_address)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--web.listen-address") from exc

    logger.info("Starting gpustat-exporter version %s on %s", __version__, settings.listen_address)
    logger.info("Metrics available at %s%s", settings.listen_address, settings.metrics_path)
    logger.info("Scrape interval: %gs", settings.scrape_interval)

    uvicorn.run(create_app(settings=settings), host=host, port=port, log_level=settings.log_level.lower())


@app.command()
def once(
    gpustat_path: Optional[str] = typer.Option(None, "--gpustat.path", help="Path to gpustat binary"),
):
    """Run a single collection cycle and print the parsed snapshot as JSON."""
    settings = _settings(gpustat_path=gpustat_path)
    configure_logging(settings.log_level)

    collector = Collector(settings.gpustat_path, settings.scrape_interval)
    if not collector.collect_once():
        raise typer.Exit(code=1)
    typer.echo(collector.last_snapshot.model_dump_json(indent=2))


@app.command()
def check(
    url: str = typer.Option("http://127.0.0.1:9101", "--url", help="Base URL of a running exporter"),
    timeout: float = typer.Option(5.0, "--timeout", help="Request timeout in seconds"),
):
    """Ask a running exporter whether it is healthy."""
    try:
        r = requests.get(url.rstrip("/") + "/health", timeout=timeout)
    except requests.RequestException as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise typer.Exit(code=1)
    if r.status_code != 200:
        print(f"Error: HTTP {r.status_code}: {r.text}", file=sys.stderr)
        raise typer.Exit(code=1)
    typer.echo(r.text)


def main() -> None:
    app()


if __name__ == "__main__":
    main()          # `python -m gpustat_exporter.cli serve`
