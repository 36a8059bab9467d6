"""Pages driven by a real browser through Playwright."""

import logging
from typing import Any

from bs4 import BeautifulSoup, Tag

from pagescoop.core.fetcher.base import Page, PageFetcher, node_xpath
from pagescoop.utils.exceptions import BotDetectionError, PageLoadError

logger = logging.getLogger(__name__)

# Flags handled by running a function in the tab
FLAG_SCRIPTS = {
    'remove-videos': "() => document.querySelectorAll('video').forEach((video) => video.remove())",
    'pause-videos': "() => document.querySelectorAll('video').forEach((video) => video.pause())",
    'clear-local-storage': '() => localStorage.clear()',
    'clear-session-storage': '() => sessionStorage.clear()',
    'disable-indexed-db': (
        "() => Object.defineProperty(window, 'indexedDB', {get: () => undefined, configurable: false})"
    ),
}

NO_ANIMATION_CSS = (
    '*, *::before, *::after { animation: none !important; transition: none !important; }\n'
    '* { opacity: 1 !important; background-color: #FFF !important; }'
)


class BrowserPage(Page):
    """A live browser tab.

    Every ``document()`` call re-reads the rendered DOM, so polling for an
    element sees content that scripts add after load. Clicks and fills find
    the live element through the snapshot node's positional XPath.
    """

    def __init__(self, url: str, page: Any, on_close: Any = None, parser: str = 'lxml'):
        """Wrap a Playwright page.

        Args:
            url: Page URL
            page: playwright.sync_api.Page
            on_close: Callable run when the page is closed (stops the browser)
            parser: BeautifulSoup tree builder for snapshots

        """
        self.url = url
        self.page = page
        self.on_close = on_close
        self.parser = parser

    def document(self) -> BeautifulSoup:
        """Parse the current rendered DOM."""
        return BeautifulSoup(self.page.content(), self.parser)

    def click(self, nodes: list[Tag]) -> int:
        """Click each node in the browser."""
        clicked = 0
        for node in nodes:
            try:
                self.page.locator(f'xpath={node_xpath(node)}').first.click()
                clicked += 1
            except Exception as e:
                logger.warning(f'Click on {node_xpath(node)} failed: {e}')
        return clicked

    def fill(self, nodes: list[Tag], value: str) -> int:
        """Fill each node in the browser (fires input and change events)."""
        filled = 0
        for node in nodes:
            try:
                self.page.locator(f'xpath={node_xpath(node)}').first.fill(value)
                filled += 1
            except Exception as e:
                logger.warning(f'Fill on {node_xpath(node)} failed: {e}')
        return filled

    def apply_flags(self, flags: list[str]) -> list[str]:
        """Run each flag against the live tab.

        ``remove-videos`` wins over ``pause-videos`` when both are given. A flag
        that fails in the page is logged and left out of the result.
        """
        applied: list[str] = []
        for flag in flags:
            if flag == 'pause-videos' and 'remove-videos' in flags:
                continue
            try:
                if flag in FLAG_SCRIPTS:
                    self.page.evaluate(FLAG_SCRIPTS[flag])
                elif flag == 'clear-cookies':
                    self.page.context.clear_cookies()
                elif flag == 'disable-animation':
                    self.page.add_style_tag(content=NO_ANIMATION_CSS)
                else:
                    continue
            except Exception as e:
                logger.warning(f'Flag {flag} could not be applied: {e}')
                continue
            applied.append(flag)
        return applied

    def close(self):
        """Close the tab and the browser behind it."""
        if self.on_close:
            self.on_close()
            self.on_close = None


class PlaywrightFetcher(PageFetcher):
    """Playwright-based fetcher using a real browser.

    Slower than the simple fetcher, but runs page scripts and supports clicks.
    """

    def __init__(self, timeout: int = 60000, headless: bool = True):
        """Initialize Playwright fetcher.

        Args:
            timeout: Page load timeout in milliseconds
            headless: Run browser in headless mode

        """
        self.timeout = timeout
        self.headless = headless

    def open(self, url: str) -> BrowserPage:
        """Launch a browser and navigate to the URL."""
        try:
            # playwright is an optional extra
            from playwright.sync_api import sync_playwright
        except ImportError as err:
            raise ImportError(
                'Playwright not installed. Install with: pip install "pagescoop[browser]" && playwright install chromium'
            ) from err

        playwright = sync_playwright().start()
        browser = None
        try:
            browser = playwright.chromium.launch(headless=self.headless)
            context = browser.new_context(viewport={'width': 1920, 'height': 1080}, locale='en-US')
            page = context.new_page()
            response = page.goto(url, wait_until='load', timeout=self.timeout)
            status_code = response.status if response else 200

            is_blocked, indicators = self._check_for_bot_detection(page.content(), status_code)
            if is_blocked:
                raise BotDetectionError(url, status_code, indicators)
        except BotDetectionError:
            self._shutdown(playwright, browser)
            raise
        except Exception as e:
            self._shutdown(playwright, browser)
            raise PageLoadError(url, str(e)) from e

        return BrowserPage(page.url or url, page, on_close=lambda: self._shutdown(playwright, browser))

    @staticmethod
    def _shutdown(playwright: Any, browser: Any):
        if browser is not None:
            try:
                browser.close()
            except Exception as e:
                logger.debug(f'Browser close failed: {e}')
        playwright.stop()
