# File: tests/test_cli.py
"""Тесты для CLI (`context_scribe.cli`) с использованием click.testing.CliRunner.
Проверяют команды `scrape`, `remote`, `config`, `--version`, а также обработку ошибок.
"""
import asyncio
import json
import logging
import os
import signal
import sys

import pytest
from click.testing import CliRunner

import importlib

cli_module = importlib.import_module("context_scribe.cli")
from context_scribe.cli import cli
from context_scribe.client import RemoteResult, ScrapeClientError
from context_scribe.crawler.cancellation import CancelToken
from context_scribe.engine import CrawlResult, CrawlState
from context_scribe.events import CacheHit, CompleteEvent, ProcessingEvent, StoppedEvent
from context_scribe.logger import DEFAULT_FORMAT


@pytest.fixture()
def cfg_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        f"concurrency: 2\ncleanup: none\ncache_dir: {tmp_path / 'cache'}\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture()
def fake_run(monkeypatch):
    """Патчим ScrapeEngine.run: без сети, с фиктивным результатом."""
    calls = {}
    outcome = {"result": CrawlResult(CrawlState.COMPLETE, content="# Doc\n\nBody")}

    async def run(self, request, cancel=None, on_event=None):
        calls["request"] = request
        calls["config"] = self.config
        if on_event is not None:
            on_event(ProcessingEvent(processed=1, total=1, message=f"Processed: {request.url}"))
        return outcome["result"]

    monkeypatch.setattr(cli_module.ScrapeEngine, "run", run)
    return calls, outcome


def test_version_option():
    runner = CliRunner()
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "ContextScribe" in result.output


def test_show_config(cfg_file):
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(cfg_file), "config"])
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["concurrency"] == 2
    assert data["cleanup"] == "none"


def test_bad_config_file(tmp_path):
    bad = tmp_path / "bad.yaml"
    bad.write_text("concurrency: -1\n", encoding="utf-8")
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(bad), "config"])
    assert result.exit_code == 1
    assert "Ошибка загрузки конфигурации" in result.output


def test_scrape_stdout(cfg_file, fake_run):
    calls, _ = fake_run
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(cfg_file), "scrape", "https://example.com/docs/"])
    assert result.exit_code == 0
    assert "# Doc\n\nBody" in result.output
    assert calls["request"].url == "https://example.com/docs/"
    assert calls["request"].force is False


def test_scrape_overrides_and_output_file(cfg_file, fake_run, tmp_path):
    calls, _ = fake_run
    out = tmp_path / "out" / "guide.md"
    runner = CliRunner()
    result = runner.invoke(
        cli,
        [
            "--config", str(cfg_file), "scrape", "https://example.com/docs/",
            "--force", "--concurrency", "7", "--cleanup", "language", "-o", str(out),
        ],
    )
    assert result.exit_code == 0
    assert out.read_text(encoding="utf-8") == "# Doc\n\nBody"
    assert calls["request"].force is True
    assert calls["config"].concurrency == 7
    assert calls["config"].cleanup == "language"


def test_scrape_invalid_url(cfg_file, fake_run):
    calls, _ = fake_run
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(cfg_file), "scrape", "not-a-url"])
    assert result.exit_code == 1
    assert "Некорректный URL" in result.output
    assert "request" not in calls


def test_scrape_reports_cache_hit(cfg_file, fake_run):
    _, outcome = fake_run
    hit = CacheHit(lastModified="2024-05-01T10:00:00Z", content="cached")
    outcome["result"] = CrawlResult(CrawlState.COMPLETE, content="cached", cache_hit=hit)
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(cfg_file), "scrape", "https://example.com/docs/"])
    assert result.exit_code == 0
    assert "Cache hit" in result.output
    assert "cached" in result.output


@pytest.mark.parametrize(
    "state,error",
    [(CrawlState.STOPPED, None), (CrawlState.ERROR, "An unexpected server error occurred.")],
)
def test_scrape_unfinished_exits_nonzero(cfg_file, fake_run, state, error):
    _, outcome = fake_run
    outcome["result"] = CrawlResult(state, error=error)
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(cfg_file), "scrape", "https://example.com/docs/"])
    assert result.exit_code == 1


def test_remote_uses_client(cfg_file, monkeypatch):
    seen = {}

    async def scrape(self, url, force=False, on_event=None):
        seen["base"] = self.base_url
        seen["url"] = url
        return RemoteResult(content="remote doc", terminal=CompleteEvent(content="remote doc"))

    monkeypatch.setattr(cli_module.ScrapeClient, "scrape", scrape)
    runner = CliRunner()
    result = runner.invoke(
        cli,
        ["--config", str(cfg_file), "remote", "https://example.com/docs/", "--server", "http://h:1/"],
    )
    assert result.exit_code == 0
    assert "remote doc" in result.output
    assert seen == {"base": "http://h:1", "url": "https://example.com/docs/"}


@pytest.mark.parametrize(
    "outcome",
    [ScrapeClientError("Invalid URL provided"), RemoteResult(content=None, terminal=StoppedEvent(message="x"))],
)
def test_remote_failures_exit_nonzero(cfg_file, monkeypatch, outcome):
    async def scrape(self, url, force=False, on_event=None):
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    monkeypatch.setattr(cli_module.ScrapeClient, "scrape", scrape)
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(cfg_file), "remote", "https://example.com/docs/"])
    assert result.exit_code == 1


def test_default_log_format_is_project_format(cfg_file):
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(cfg_file), "config"])
    assert result.exit_code == 0
    handler = logging.getLogger("ContextScribe").handlers[0]
    assert handler.formatter._fmt == DEFAULT_FORMAT


@pytest.mark.skipif(sys.platform == "win32", reason="no loop signal handlers on Windows")
def test_scrape_interrupt_stops_gracefully(cfg_file, monkeypatch):
    seen = {}

    async def run(self, request, cancel=None, on_event=None):
        seen["cancel"] = cancel
        os.kill(os.getpid(), signal.SIGINT)
        await asyncio.wait_for(cancel.wait(), 5)
        return CrawlResult(CrawlState.STOPPED, content=None)

    monkeypatch.setattr(cli_module.ScrapeEngine, "run", run)
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(cfg_file), "scrape", "https://example.com/docs/"])

    assert isinstance(seen["cancel"], CancelToken)
    assert seen["cancel"].reason == "interrupted by user"
    assert result.exit_code == 1
    assert "Остановлено до завершения." in result.output
    assert not isinstance(result.exception, KeyboardInterrupt)
