# === FILE: site_index/cli.py ===
#!/usr/bin/env python3
"""
Точка входа командной строки SiteIndex.

Команды:
  crawl     Обойти сайт по sitemap.xml и сохранить индекс
  search    Найти страницы в сохранённом индексе
  serve     Запустить HTTP API (обход, прогресс, поиск)
  config    Показать текущую конфигурацию

Общие опции:
  --config PATH       Путь к YAML/JSON-конфигу (default: configs/default.yaml, если есть)
  --log-level LEVEL   Уровень логирования (DEBUG, INFO, ...)
  --log-file PATH     Файл для логов (stdout, если не указан)
  --log-format FORMAT Формат логирования

Пример:
  site-index crawl example.com
  site-index search example.com "pricing" --json results.json --pretty
"""
import asyncio
import json
import sys
import uuid
from pathlib import Path

import click

from site_index import __version__
from site_index.config import load_config
from site_index.engine import Engine
from site_index.errors import SiteIndexError
from site_index.logger import DEFAULT_FORMAT, configure
from site_index.models import JobState
from site_index.report import render_html, render_json, results_payload
from site_index.server import run_server

CONTEXT_SETTINGS = dict(help_option_names=["--help"])


def print_error(message: str):
    click.secho(message, fg='red', err=True)
    sys.exit(1)


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='SiteIndex, version %(version)s')
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
    help='Путь к файлу логов (stdout, если не указан)'
)
@click.option(
    '--log-format', 'log_format',
    default=DEFAULT_FORMAT,
    show_default=True,
    help='Строка формата для логов'
)
@click.pass_context
def cli(ctx, config_path, log_level, log_file, log_format):
    """Группа команд SiteIndex CLI."""
    configure(level=log_level, log_file=log_file, log_format=log_format)
    try:
        cfg = load_config(config_path)
    except Exception as e:
        print_error(f'Ошибка загрузки конфигурации: {e}')
    ctx.ensure_object(dict)
    ctx.obj['config'] = cfg


async def _crawl_with_progress(engine: Engine, domain: str, job_id: str):
    job = engine.start_crawl(domain, job_id)
    subscription = engine.broadcaster.subscribe(job.id)
    try:
        async for event in subscription:
            click.echo(f'{event.done}/{event.total}')
    finally:
        engine.broadcaster.unsubscribe(subscription)
    return await engine.orchestrator.wait(job.id)


@cli.command('crawl', context_settings=CONTEXT_SETTINGS)
@click.argument('domain')
@click.option('--job-id', 'job_id', default=None, help='Идентификатор задачи (по умолчанию случайный)')
@click.pass_context
def crawl(ctx, domain, job_id):
    """Обойти DOMAIN по sitemap.xml и сохранить индекс."""
    cfg = ctx.obj['config']
    engine = Engine(cfg)
    try:
        job = asyncio.run(_crawl_with_progress(engine, domain, job_id or uuid.uuid4().hex))
    except SiteIndexError as e:
        print_error(f'Ошибка при обходе: {e.describe()}')

    if job.state is not JobState.COMPLETED:
        print_error(f'Обход {job.domain} не удался: {job.error}')
    click.echo(f'Indexed {job.indexed} of {job.total} pages for {job.domain}'
               f' ({len(job.failures)} skipped)')


@cli.command('search', context_settings=CONTEXT_SETTINGS)
@click.argument('domain')
@click.argument('query')
@click.option('--exact/--fuzzy', 'exact', default=None,
              help='Точное совпадение подстроки или нечеткий поиск (по умолчанию из конфига)')
@click.option(
    '--json', '-j', 'json_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Сохранить JSON-отчёт в файл'
)
@click.option(
    '--html', '-h', 'html_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Сохранить HTML-отчёт в файл'
)
@click.option(
    '--template', '-t', 'template_dir',
    default=None,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help='Папка с Jinja2-шаблонами (по умолчанию шаблоны пакета)'
)
@click.option('--pretty', is_flag=True, help='Преформатировать JSON-вывод (отступ 2)')
@click.pass_context
def search(ctx, domain, query, exact, json_output, html_output, template_dir, pretty):
    """Найти QUERY в индексе DOMAIN."""
    engine = Engine(ctx.obj['config'])
    try:
        results = asyncio.run(engine.search(domain, query, exact))
    except SiteIndexError as e:
        print_error(f'Ошибка поиска: {e.describe()}')

    # Если не сохраняем в файл, печатаем в stdout
    if not json_output and not html_output:
        indent = 2 if pretty else None
        click.echo(json.dumps(results_payload(results), ensure_ascii=False, indent=indent))
        return

    if json_output:
        try:
            saved_json = render_json(results, json_output, pretty=pretty)
            click.echo(f'JSON report: {saved_json}')
        except OSError as e:
            print_error(f'Ошибка при сохранении JSON: {e}')

    if html_output:
        try:
            saved_html = render_html(results, html_output, domain=domain, query=query,
                                     template_dir=template_dir)
            click.echo(f'HTML report: {saved_html}')
        except OSError as e:
            print_error(f'Ошибка при сохранении HTML: {e}')


@cli.command('serve', context_settings=CONTEXT_SETTINGS)
@click.option('--host', default=None, help='Адрес для HTTP API (по умолчанию из конфига)')
@click.option('--port', default=None, type=int, help='Порт для HTTP API (по умолчанию из конфига)')
@click.pass_context
def serve(ctx, host, port):
    """Запустить HTTP API."""
    run_server(ctx.obj['config'], host=host, port=port)


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Показать текущую конфигурацию в JSON."""
    cfg = ctx.obj['config']
    click.echo(cfg.model_dump_json(indent=2))


if __name__ == "__main__":
    cli()
