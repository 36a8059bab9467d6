"""Runs scrape jobs: load the page, prepare it, extract records."""

import logging
import time
from collections.abc import Callable

import logfire
from bs4 import BeautifulSoup
from rich.console import Console
from rich.theme import Theme

from pagescoop.config import ScrapeSettings
from pagescoop.core.extraction import FieldExtractor, ImageCapture, ImageFetcher, Record, RecordAssembler
from pagescoop.core.fetcher import Page, PageFetcher, create_fetcher
from pagescoop.core.selector import SelectorEngine
from pagescoop.models import ClickCommand, FillCommand, ScrapeJob, ScrapeResult, WaitCommand
from pagescoop.utils.exceptions import BotDetectionError, ElementNotFoundError, PageLoadError
from pagescoop.utils.retry import poll_until

CONSOLE_THEME = Theme(
    {
        'info': 'dim cyan',
        'warning': 'magenta',
        'danger': 'bold red',
        'success': 'bold green',
        'step': 'bold blue',
    }
)


class Scraper:
    """Main pipeline for turning scrape jobs into results.

    For each job: load the page, wait the settle delay, apply the job flags,
    poll for the wait-for element, run wait/click/fill commands in order, then
    assemble records from the scope and field commands.

    Attributes:
        settings: Run settings
        console: Rich console instance for formatted output
        fetcher: Loads pages for jobs that do not bring their own
        engine: Selector engine shared by every step
        images: Image capture shared across jobs
        sleep: Sleep function (seconds); replaced in tests
        logger: Logger instance for detailed run tracking

    """

    def __init__(
        self,
        settings: ScrapeSettings | None = None,
        fetcher: PageFetcher | None = None,
        console: Console | None = None,
        images: ImageCapture | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the scraper.

        Args:
            settings: Run settings. Defaults to ScrapeSettings().
            fetcher: Page fetcher. Defaults to the one named in settings.
            console: Rich console. Defaults to a themed console.
            images: Image capture. Defaults to one using settings.image_timeout.
            sleep: Sleep function taking seconds. Defaults to time.sleep.

        """
        self.settings = settings or ScrapeSettings()
        self.console = console or Console(theme=CONSOLE_THEME)
        self.fetcher = fetcher or create_fetcher(self.settings.fetcher)
        self.engine = SelectorEngine()
        self.images = images or ImageCapture(fetcher=ImageFetcher(timeout=self.settings.image_timeout))
        self.sleep = sleep
        self.logger = logging.getLogger(__name__)

    def run(self, job: ScrapeJob, page: Page | None = None) -> ScrapeResult:
        """Scrape one job.

        Args:
            job: The job to run
            page: Already-loaded page. When None the fetcher loads job.url and
                the page is closed afterwards.

        Returns:
            ScrapeResult with records, or with ``error`` set when the page could
            not be loaded or the wait-for element never appeared.

        Raises:
            BotDetectionError: If the site served a block page

        """
        with logfire.span('scrape_job', url=job.url, job_id=job.id):
            self.logger.info(f'Scraping {job.url} (id={job.id}, commands={len(job.commands)})')

            owns_page = page is None
            try:
                if page is None:
                    page = self.fetcher.open(job.url)
            except PageLoadError as e:
                logfire.error('Page load failed', url=job.url, error=str(e))
                return ScrapeResult(id=job.id, url=job.url, error=str(e))

            try:
                return self.scrape_page(page, job)
            finally:
                if owns_page:
                    page.close()

    def run_many(self, jobs: list[ScrapeJob]) -> list[ScrapeResult]:
        """Scrape jobs one after another.

        Bot detection on one job is reported and recorded as that job's error;
        the remaining jobs still run.
        """
        results: list[ScrapeResult] = []

        with logfire.span('scrape_jobs', total_jobs=len(jobs)):
            for idx, job in enumerate(jobs, 1):
                self.console.print(f'\n[step]Job {idx}/{len(jobs)}:[/step] {job.url}')
                try:
                    result = self.run(job)
                except BotDetectionError as e:
                    self.console.print(f'[danger]Bot detection triggered: {", ".join(e.indicators)}[/danger]')
                    logfire.error('Bot detection triggered', url=e.url, status_code=e.status_code)
                    result = ScrapeResult(id=job.id, url=job.url, error=str(e))

                if result.success:
                    self.console.print(f'[success]✓ {len(result.data)} record(s)[/success]')
                else:
                    self.console.print(f'[danger]✗ {result.error}[/danger]')
                results.append(result)

        return results

    def scrape_page(self, page: Page, job: ScrapeJob) -> ScrapeResult:
        """Run a job's steps against a loaded page."""
        if job.settle_delay:
            self.logger.debug(f'Settling for {job.settle_delay} ms')
            self.sleep(job.settle_delay / 1000)

        if job.flags:
            applied = page.apply_flags(job.flags)
            self.logger.debug(f'Applied flags: {", ".join(applied) or "none"}')

        if job.wait_for:
            try:
                self.wait_for_element(page, job.wait_for)
            except ElementNotFoundError as e:
                logfire.warn('Wait-for element not found', url=job.url, selector=job.wait_for)
                return ScrapeResult(id=job.id, url=page.url, error=str(e))

        self.execute_commands(page, job)

        file_name = str(job.id) if job.id is not None else None
        extractor = FieldExtractor(page_url=page.url, file_name=file_name, images=self.images)
        assembler = RecordAssembler(extractor, engine=self.engine)

        with logfire.span('assemble_records', scopes=len(job.scope_commands), fields=len(job.field_commands)):
            records = assembler.assemble(page.document(), job.scope_commands, job.field_commands)

        logfire.info('Records assembled', url=page.url, records=len(records))
        return ScrapeResult(id=job.id, url=page.url, data=records)

    def wait_for_element(self, page: Page, selector: str) -> None:
        """Poll the page until the selector matches something.

        A page whose document cannot change is checked once.

        Raises:
            ElementNotFoundError: If nothing matched within the configured attempts

        """
        attempts = self.settings.poll_attempts if page.live else 1
        found = poll_until(
            lambda: bool(self.engine.resolve(selector, page.document())),
            max_attempts=attempts,
            interval=self.settings.poll_interval,
            sleep=self.sleep,
        )
        if not found:
            raise ElementNotFoundError(selector, attempts)

    def execute_commands(self, page: Page, job: ScrapeJob) -> None:
        """Run wait, click and fill commands in job order."""
        for command in job.commands:
            if isinstance(command, WaitCommand):
                if command.time > 0:
                    self.logger.info(f'Waiting for {command.time} ms...')
                    self.sleep(command.time / 1000)
            elif isinstance(command, ClickCommand):
                nodes = self.engine.resolve(command.selector, page.document())
                clicked = page.click(nodes)
                self.logger.debug(f'Clicked {clicked}/{len(nodes)} element(s) for {command.selector!r}')
            elif isinstance(command, FillCommand):
                nodes = self.engine.resolve(command.selector, page.document())
                filled = page.fill(nodes, command.value)
                self.logger.debug(f'Filled {filled}/{len(nodes)} element(s) for {command.selector!r}')

    def close(self):
        """Release the fetcher and image sessions."""
        self.fetcher.close()
        self.images.close()


def extract_records(
    html: str,
    commands: list,
    url: str | None = None,
    images: ImageCapture | None = None,
) -> list[Record]:
    """Assemble records straight from HTML, without loading a page.

    Only scope and field commands apply; wait, click and fill are ignored.

    Args:
        html: Page markup
        commands: Raw command dicts or command models
        url: Page URL used to resolve relative image sources
        images: Image capture helper

    Returns:
        The assembled records.

    """
    job = ScrapeJob(url=url or 'about:blank', commands=commands)
    extractor = FieldExtractor(page_url=url, images=images)
    assembler = RecordAssembler(extractor)
    return assembler.assemble(BeautifulSoup(html, 'lxml'), job.scope_commands, job.field_commands)
