"""Static pages loaded over plain HTTP."""

import logging
import time

import requests
from bs4 import BeautifulSoup, Tag

from pagescoop.core.fetcher.base import Page, PageFetcher
from pagescoop.models.results import FetchResult
from pagescoop.utils.exceptions import BotDetectionError, PageLoadError
from pagescoop.utils.headers import HeaderGenerator

logger = logging.getLogger(__name__)


class StaticPage(Page):
    """A page parsed once from HTML.

    Fills are written into the parsed tree so later extraction sees them;
    clicks cannot run without a browser and are logged and skipped.

    Attributes:
        url: Page URL
        soup: Parsed document

    """

    live = False

    def __init__(self, url: str, html: str, parser: str = 'lxml'):
        """Parse the page.

        Args:
            url: Page URL
            html: Page HTML
            parser: BeautifulSoup tree builder. Defaults to 'lxml'.

        """
        self.url = url
        self.soup = BeautifulSoup(html, parser)

    def document(self) -> BeautifulSoup:
        """Return the parsed document (the same tree on every call)."""
        return self.soup

    def click(self, nodes: list[Tag]) -> int:
        """Clicking needs a browser; log and do nothing."""
        if nodes:
            logger.warning(f'Cannot click {len(nodes)} element(s) on a static page; use the playwright fetcher')
        return 0

    def fill(self, nodes: list[Tag], value: str) -> int:
        """Write the value into each node's markup."""
        for node in nodes:
            if node.name == 'textarea':
                node.string = value
            else:
                node['value'] = value
        return len(nodes)

    def apply_flags(self, flags: list[str]) -> list[str]:
        """Apply the flags that change the parsed tree.

        Only ``remove-videos`` does; storage, cookie and animation flags need a
        running browser.
        """
        applied: list[str] = []
        if 'remove-videos' in flags:
            for video in self.soup.find_all('video'):
                video.decompose()
            applied.append('remove-videos')

        ignored = [flag for flag in flags if flag not in applied]
        if ignored:
            logger.debug(f'Flags with no effect on a static page: {", ".join(ignored)}')
        return applied


class SimpleFetcher(PageFetcher):
    """HTTP fetcher with browser-like headers and bot-page detection.

    Attributes:
        timeout: Request timeout in seconds
        session: Requests session reused across pages
        parser: BeautifulSoup tree builder for loaded pages

    """

    def __init__(self, timeout: int = 30, session: requests.Session | None = None, parser: str = 'lxml'):
        """Initialize the simple fetcher.

        Args:
            timeout: Request timeout in seconds. Defaults to 30.
            session: Session to reuse. A new one is created when None.
            parser: BeautifulSoup tree builder. Defaults to 'lxml'.

        """
        self.timeout = timeout
        self.session = session or requests.Session()
        self.parser = parser

    def fetch(self, url: str) -> FetchResult:
        """Fetch raw HTML.

        Raises:
            BotDetectionError: If the response looks like a block page

        """
        start_time = time.time()

        try:
            response = self.session.get(
                url,
                headers=HeaderGenerator.generate_headers(),
                timeout=self.timeout,
                allow_redirects=True,
            )
        except requests.RequestException as e:
            return FetchResult(url=url, error=str(e), fetch_time=time.time() - start_time)

        html = response.text
        is_blocked, indicators = self._check_for_bot_detection(html, response.status_code)
        if is_blocked:
            raise BotDetectionError(url, response.status_code, indicators)

        if response.status_code >= 400:
            return FetchResult(
                url=url,
                status_code=response.status_code,
                error=f'HTTP {response.status_code}',
                fetch_time=time.time() - start_time,
            )

        return FetchResult(
            url=response.url or url,
            html=html,
            status_code=response.status_code,
            fetch_time=time.time() - start_time,
        )

    def open(self, url: str) -> StaticPage:
        """Fetch and parse a page.

        Raises:
            PageLoadError: If the HTML could not be fetched
            BotDetectionError: If the response looks like a block page

        """
        result = self.fetch(url)
        if not result.success or result.html is None:
            raise PageLoadError(url, result.error or 'empty response')

        logger.info(f'Fetched {len(result.html):,} characters from {result.url} ({result.fetch_time:.2f}s)')
        return StaticPage(result.url, result.html, parser=self.parser)

    def close(self):
        """Close the session."""
        self.session.close()
