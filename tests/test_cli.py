"""CLI commands, run through typer's CliRunner."""

from __future__ import annotations

import json

import pytest
import requests
from typer.testing import CliRunner

from gpustat_exporter import cli

runner = CliRunner()


class _FakeResponse:
    def __init__(self, status_code: int, text: str) -> None:
        self.status_code = status_code
        self.text = text


def test_once_prints_snapshot(fake_gpustat) -> None:
    result = runner.invoke(cli.app, ["once", "--gpustat.path", fake_gpustat()])
    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout[result.stdout.index("{"):])
    assert payload["hostname"] == "gpu-host-01"
    assert payload["gpus"][0]["processes"][1] == {"username": "bob", "memory_mb": 512.0}


def test_once_fails_when_gpustat_fails(fake_gpustat) -> None:
    result = runner.invoke(cli.app, ["once", "--gpustat.path", fake_gpustat(code=1)])
    assert result.exit_code == 1


def test_serve_requires_gpustat_on_path(tmp_path, monkeypatch) -> None:
    started = []
    monkeypatch.setattr(cli.uvicorn, "run", lambda *a, **kw: started.append(kw))
    result = runner.invoke(cli.app, ["serve", "--gpustat.path", str(tmp_path / "missing")])
    assert result.exit_code == 1
    assert started == []


def test_serve_runs_uvicorn(fake_gpustat, monkeypatch) -> None:
    started = []
    monkeypatch.setattr(cli.uvicorn, "run", lambda app, **kw: started.append((app, kw)))
    result = runner.invoke(
        cli.app,
        ["serve", "--gpustat.path", fake_gpustat(), "--web.listen-address", "127.0.0.1:9200",
         "--scrape.interval", "5"],
    )
    assert result.exit_code == 0, result.output
    app, kwargs = started[0]
    assert (kwargs["host"], kwargs["port"]) == ("127.0.0.1", 9200)
    assert app.state.settings.scrape_interval == 5
    assert app.state.collector.interval == 5


def test_serve_rejects_bad_listen_address(fake_gpustat, monkeypatch) -> None:
    monkeypatch.setattr(cli.uvicorn, "run", lambda *a, **kw: None)
    result = runner.invoke(cli.app, ["serve", "--gpustat.path", fake_gpustat(), "--web.listen-address", "9101"])
    assert result.exit_code != 0


def test_check_healthy(monkeypatch) -> None:
    seen = []

    def fake_get(url, timeout):
        seen.append(url)
        return _FakeResponse(200, "OK")

    monkeypatch.setattr(cli.requests, "get", fake_get)
    result = runner.invoke(cli.app, ["check", "--url", "http://gpu-host-01:9101/"])
    assert result.exit_code == 0
    assert seen == ["http://gpu-host-01:9101/health"]
    assert "OK" in result.stdout


def test_check_unreachable(monkeypatch) -> None:
    def fake_get(url, timeout):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(cli.requests, "get", fake_get)
    result = runner.invoke(cli.app, ["check"])
    assert result.exit_code == 1


def test_check_unhealthy(monkeypatch) -> None:
    monkeypatch.setattr(cli.requests, "get", lambda url, timeout: _FakeResponse(503, "down"))
    result = runner.invoke(cli.app, ["check"])
    assert result.exit_code == 1


def test_bad_interval_in_environment_is_a_usage_error(fake_gpustat, monkeypatch) -> None:
    monkeypatch.setenv("GPUSTAT_EXPORTER_SCRAPE_INTERVAL", "abc")
    monkeypatch.setattr(cli.uvicorn, "run", lambda *a, **kw: pytest.fail("server started"))
    result = runner.invoke(cli.app, ["serve", "--gpustat.path", fake_gpustat()])
    assert result.exit_code == 2
    assert not isinstance(result.exception, ValueError)
