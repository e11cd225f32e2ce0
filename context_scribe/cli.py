# === FILE: context_scribe/cli.py ===
#!/usr/bin/env python3
"""
Точка входа ContextScribe через командную строку.

Команды:
  scrape URL   Обойти сайт в этом процессе и сохранить единый markdown-документ
  remote URL   То же через запущенный сервер (потоковый протокол /api/scrape)
  serve        Запустить HTTP-сервер
  config       Показать текущую конфигурацию

Общие опции:
  --config PATH       Путь к YAML/JSON-конфигу (default: configs/default.yaml, если есть)
  --log-level LEVEL   Уровень логирования (DEBUG, INFO, ...)
  --log-file PATH     Файл для логов (stderr, если не указан)
  --log-format FORMAT Формат логирования

Дополнительно:
  --version, -v       Показать версию ContextScribe

Пример:
  context-scribe scrape https://docs.example.com/guide/ --output guide.md
"""
import asyncio
import signal
import sys
from pathlib import Path

import click

from context_scribe import __version__
from context_scribe.client import ScrapeClient, ScrapeClientError
from context_scribe.config import load_config
from context_scribe.crawler.cancellation import CancelToken
from context_scribe.engine import CrawlState, ScrapeEngine, ScrapeRequest
from context_scribe.events import (
    DiscoveryEvent,
    ErrorEvent,
    PhaseEvent,
    ProcessingEvent,
    StoppedEvent,
)
from context_scribe.logger import DEFAULT_FORMAT, init_logging, logger
from context_scribe.server import run_server

CONTEXT_SETTINGS = dict(help_option_names=["--help"])


def print_error(message: str):
    click.secho(message, fg='red', err=True)
    sys.exit(1)


def echo_event(event) -> None:
    """Печатает событие прогресса в stderr."""
    if isinstance(event, PhaseEvent):
        click.secho(event.message, fg='cyan', err=True)
    elif isinstance(event, DiscoveryEvent):
        click.echo(f'[{event.discovered}] {event.message}', err=True)
    elif isinstance(event, ProcessingEvent):
        click.echo(f'[{event.processed}/{event.total}] {event.message}', err=True)
    elif isinstance(event, StoppedEvent):
        click.secho(event.message, fg='yellow', err=True)
    elif isinstance(event, ErrorEvent):
        click.secho(event.error, fg='red', err=True)


def write_document(content: str, output) -> None:
    if output is None:
        click.echo(content)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(content, encoding='utf-8')
    click.echo(f'Saved: {output}', err=True)


async def run_until_interrupted(engine: ScrapeEngine, request: ScrapeRequest):
    """Запускает сбор; Ctrl-C поднимает токен отмены вместо KeyboardInterrupt."""
    cancel = CancelToken()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel.cancel, 'interrupted by user')
        handled = True
    except (NotImplementedError, RuntimeError) as e:
        # Windows event loops and non-main threads have no signal handlers
        logger.debug('SIGINT handler not installed: %s', e)
        handled = False
    try:
        return await engine.run(request, cancel=cancel, on_event=echo_event)
    finally:
        if handled:
            loop.remove_signal_handler(signal.SIGINT)


def make_request(url: str, force: bool) -> ScrapeRequest:
    try:
        return ScrapeRequest(url=url, force=force)
    except ValueError:
        print_error(f'Некорректный URL: {url}')


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='ContextScribe, version %(version)s')
@click.option(
    '--config', '-c', 'config_path',
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Путь к файлу конфигурации YAML/JSON.'
)
@click.option(
    '--log-level', 'log_level',
    default='INFO', show_default=True,
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
    help='Уровень логирования'
)
@click.option(
    '--log-file', 'log_file',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Путь к файлу логов (stderr, если не указан)'
)
@click.option(
    '--log-format', 'log_format',
    default=DEFAULT_FORMAT,
    show_default=True,
    help='Строка формата для логов'
)
@click.pass_context
def cli(ctx, config_path, log_level, log_file, log_format):
    """Группа команд ContextScribe CLI."""
    init_logging(
        level=log_level,
        log_file=str(log_file) if log_file else None,
        log_format=log_format
    )
    try:
        cfg = load_config(config_path)
    except Exception as e:
        print_error(f'Ошибка загрузки конфигурации: {e}')
    ctx.ensure_object(dict)
    ctx.obj['config'] = cfg


@cli.command('scrape', context_settings=CONTEXT_SETTINGS)
@click.argument('url')
@click.option('--force', '-f', is_flag=True, help='Игнорировать свежий кэш')
@click.option(
    '--output', '-o', 'output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Сохранить документ в файл (stdout, если не указан)'
)
@click.option('--concurrency', type=click.IntRange(min=1), default=None,
              help='Override concurrency из конфига')
@click.option('--cleanup', type=click.Choice(['none', 'language', 'rules', 'llm']), default=None,
              help='Override варианта очистки')
@click.pass_context
def scrape(ctx, url, force, output, concurrency, cleanup):
    """Обойти сайт начиная с URL и собрать единый документ."""
    cfg = ctx.obj['config']
    overrides = {k: v for k, v in (('concurrency', concurrency), ('cleanup', cleanup)) if v is not None}
    if overrides:
        cfg = cfg.model_copy(update=overrides)
    request = make_request(url, force)

    engine = ScrapeEngine(cfg)
    result = asyncio.run(run_until_interrupted(engine, request))

    if result.cache_hit is not None:
        click.secho(f'Cache hit (last modified {result.cache_hit.last_modified})', fg='green', err=True)
    if result.state is CrawlState.STOPPED:
        if result.content:
            write_document(result.content, output)
        print_error('Остановлено до завершения.')
    if result.state is CrawlState.ERROR:
        print_error(f'Ошибка при сборе: {result.error}')
    write_document(result.content or '', output)


@cli.command('remote', context_settings=CONTEXT_SETTINGS)
@click.argument('url')
@click.option('--server', '-s', 'server', default=None,
              help='Базовый URL сервера (по умолчанию host:port из конфига)')
@click.option('--force', '-f', is_flag=True, help='Игнорировать свежий кэш')
@click.option(
    '--output', '-o', 'output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Сохранить документ в файл (stdout, если не указан)'
)
@click.pass_context
def remote(ctx, url, server, force, output):
    """Собрать документ через запущенный сервер ContextScribe."""
    cfg = ctx.obj['config']
    client = ScrapeClient(server or f'http://{cfg.host}:{cfg.port}')
    try:
        result = asyncio.run(client.scrape(url, force=force, on_event=echo_event))
    except ScrapeClientError as e:
        print_error(f'Ошибка сервера: {e}')
    except OSError as e:
        print_error(f'Сервер недоступен: {e}')
    if result.cache_hit is not None:
        click.secho(f'Cache hit (last modified {result.cache_hit.last_modified})', fg='green', err=True)
    if result.stopped:
        print_error('Остановлено до завершения.')
    write_document(result.content or '', output)


@cli.command('serve', context_settings=CONTEXT_SETTINGS)
@click.option('--host', default=None, help='Override host из конфига')
@click.option('--port', type=int, default=None, help='Override port из конфига')
@click.pass_context
def serve(ctx, host, port):
    """Запустить HTTP-сервер."""
    cfg = ctx.obj['config']
    overrides = {k: v for k, v in (('host', host), ('port', port)) if v is not None}
    if overrides:
        cfg = cfg.model_copy(update=overrides)
    run_server(cfg)


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Показать текущую конфигурацию в JSON."""
    cfg = ctx.obj['config']
    click.echo(cfg.model_dump_json(indent=2))


if __name__ == "__main__":
    cli()
