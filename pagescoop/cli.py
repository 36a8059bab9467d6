"""
cli.py
======
Command-line entry point: run scrape jobs and collect their results.
"""

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Any

import logfire
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from pagescoop.config import ScrapeSettings
from pagescoop.core.pipeline import CONSOLE_THEME, Scraper
from pagescoop.models import JOB_FLAGS, ScrapeJob, ScrapeResult
from pagescoop.storage import ResultStorage, is_image_descriptor
from pagescoop.utils.exceptions import CommandError
from pagescoop.utils.logging import setup_local_logging

FIELD_TYPES = ['text', 'tag', 'attribute', 'attr', 'markup', 'html', 'image', 'img']


def load_jobs(path: str) -> list[ScrapeJob]:
    """Load jobs from a JSON file holding one job object or a list of them.

    Raises:
        CommandError: If the file is not valid JSON or holds an invalid job

    """
    try:
        with open(path, encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise CommandError(f'Invalid JSON in {path}: {e}') from e

    payloads = data if isinstance(data, list) else [data]
    return [ScrapeJob.from_payload(payload) for payload in payloads]


def build_job(args: argparse.Namespace) -> ScrapeJob:
    """Build a single job from --url and its command options."""
    commands: list[dict[str, Any]] = [{'type': 'scope', 'selector': selector} for selector in args.scope or []]
    for field_type, name, selector in args.field or []:
        commands.append({'type': field_type, 'name': name, 'selector': selector})

    return ScrapeJob.from_payload(
        {
            'id': args.id,
            'url': args.url,
            'waitFor': args.wait_for,
            'timerDelay': args.delay,
            'flags': args.flag or [],
            'requests': commands,
        }
    )


def _display_value(value: Any) -> str:
    if value is None:
        return ''
    if is_image_descriptor(value):
        return f'[image .{value.get("extension", "?")}]'
    if isinstance(value, list):
        return ', '.join(_display_value(item) for item in value)
    text = str(value)
    return text if len(text) <= 80 else f'{text[:77]}...'


def print_result(console: Console, result: ScrapeResult) -> None:
    """Render one result's records as a table."""
    if not result.success:
        console.print(f'[danger]{result.url}: {result.error}[/danger]')
        return

    payload = result.to_payload()
    records = payload['data']
    if not records:
        console.print(f'[warning]{result.url}: no records extracted[/warning]')
        return

    columns: list[str] = []
    for record in records:
        for key in record:
            if key not in columns:
                columns.append(key)

    table = Table(title=f'{result.url} (id={result.id})', show_header=True, header_style='bold magenta')
    table.add_column('#', style='dim', justify='right')
    for column in columns:
        table.add_column(column, style='cyan')
    for index, record in enumerate(records, 1):
        table.add_row(str(index), *(_display_value(record.get(column)) for column in columns))

    console.print(table)


def print_summary(console: Console, results: list[ScrapeResult]) -> None:
    """Print totals for the run."""
    succeeded = [result for result in results if result.success]
    records = sum(len(result.data) for result in succeeded)

    console.print()
    console.print(
        Panel(
            f'Jobs: {len(results)}  Succeeded: {len(succeeded)}  '
            f'Failed: {len(results) - len(succeeded)}  Records: {records}',
            title='Summary',
            style='bold blue',
        )
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Extract structured records from web pages with selector commands')
    parser.add_argument('--job', type=str, help='JSON file with a scrape job or a list of jobs')
    parser.add_argument('--url', type=str, help='Single URL to scrape')
    parser.add_argument('--id', type=str, help='Job id for --url (used for output file names)')
    parser.add_argument(
        '--field',
        nargs=3,
        action='append',
        metavar=('TYPE', 'NAME', 'SELECTOR'),
        help=f'Field command for --url; TYPE is one of {", ".join(FIELD_TYPES)} (repeatable)',
    )
    parser.add_argument('--scope', action='append', metavar='SELECTOR', help='Scope selector for --url (repeatable)')
    parser.add_argument('--wait-for', type=str, help='Selector to wait for before extracting (--url only)')
    parser.add_argument('--delay', type=float, help='Settle delay in milliseconds (--url only)')
    parser.add_argument(
        '--flag',
        action='append',
        choices=sorted(JOB_FLAGS),
        help='Page preparation flag for --url (repeatable)',
    )
    parser.add_argument(
        '--fetcher',
        choices=['simple', 'playwright'],
        default=None,
        help='Page fetcher to use (default: PAGESCOOP_FETCHER or simple)',
    )
    parser.add_argument('--output', type=str, help='Output directory (default: .pagescoop/output)')
    parser.add_argument('--no-save', action='store_true', help='Print results without writing files')
    parser.add_argument('--log-level', type=str, default=None, help='Log file level (default: PAGESCOOP_LOG_LEVEL)')
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    load_dotenv()
    args = build_parser().parse_args(argv)

    try:
        settings = ScrapeSettings.from_env()
    except ValueError as e:
        print(f'Error: invalid PAGESCOOP_* setting: {e}')
        return 1

    overrides: dict[str, Any] = {}
    if args.fetcher:
        overrides['fetcher'] = args.fetcher
    if args.output:
        overrides['output_dir'] = args.output
    if args.log_level:
        overrides['log_level'] = args.log_level
    settings = settings.model_copy(update=overrides)

    logfire_token = os.getenv('LOGFIRE_TOKEN')
    if logfire_token:
        logfire.configure(token=logfire_token)
    else:
        logfire.configure(send_to_logfire=False, console=False)

    console = Console(theme=CONSOLE_THEME)
    log_file = setup_local_logging(settings.log_level, console=console)
    console.print(f'[info]Logging to {log_file}[/info]')

    try:
        jobs: list[ScrapeJob] = []
        if args.job:
            if not Path(args.job).exists():
                console.print(f'[danger]Job file not found: {args.job}[/danger]')
                return 1
            jobs.extend(load_jobs(args.job))
        if args.url:
            jobs.append(build_job(args))
    except CommandError as e:
        console.print(f'[danger]{e}[/danger]')
        return 1

    if not jobs:
        console.print('[danger]Nothing to do: pass --job FILE or --url URL[/danger]')
        return 1

    scraper = Scraper(settings=settings, console=console)
    storage = None if args.no_save else ResultStorage(settings.output_dir, timeout=settings.image_timeout)

    try:
        results = scraper.run_many(jobs)
        for result in results:
            print_result(console, result)
            if storage:
                path = storage.save(result)
                console.print(f'[info]Saved {path}[/info]')
    finally:
        scraper.close()
        if storage:
            storage.close()

    print_summary(console, results)
    return 0 if all(result.success for result in results) else 2


if __name__ == '__main__':
    sys.exit(main())
