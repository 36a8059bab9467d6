"""Abstract pages and page fetchers."""

from abc import ABC, abstractmethod

from bs4 import BeautifulSoup, Tag


def node_xpath(node: Tag) -> str:
    """Return a positional XPath (``/html[1]/body[1]/div[2]``) for an element.

    Used to find, in a live browser, the element a snapshot node came from.
    """
    steps: list[str] = []
    current: Tag | None = node
    while current is not None and not isinstance(current, BeautifulSoup):
        position = 1
        for sibling in current.previous_siblings:
            if isinstance(sibling, Tag) and sibling.name == current.name:
                position += 1
        steps.append(f'{current.name}[{position}]')
        current = current.parent
    return '/' + '/'.join(reversed(steps))


class Page(ABC):
    """A loaded page the scraper can read and interact with.

    Attributes:
        url: Final URL of the page
        live: Whether document() can return different content between calls

    """

    url: str
    live: bool = True

    @abstractmethod
    def document(self) -> BeautifulSoup:
        """Return a parsed snapshot of the current page."""

    @abstractmethod
    def click(self, nodes: list[Tag]) -> int:
        """Click the given snapshot nodes.

        Returns:
            Number of nodes clicked

        """

    @abstractmethod
    def fill(self, nodes: list[Tag], value: str) -> int:
        """Set the value of the given snapshot nodes.

        Returns:
            Number of nodes filled

        """

    def apply_flags(self, flags: list[str]) -> list[str]:
        """Prepare the page for extraction according to job flags.

        Returns:
            The flags that took effect on this page

        """
        return []

    def close(self):  # noqa: B027
        """Release resources held by the page."""

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()


class PageFetcher(ABC):
    """Abstract base class for page fetchers.

    Implement this interface to load pages from a new source.
    """

    @abstractmethod
    def open(self, url: str) -> Page:
        """Load a URL.

        Raises:
            PageLoadError: If the page cannot be loaded
            BotDetectionError: If the site served a block page

        """

    def close(self):  # noqa: B027
        """Release resources shared across pages."""

    def _check_for_bot_detection(self, html: str, status_code: int) -> tuple[bool, list[str]]:
        """Check if HTML indicates bot detection.

        Args:
            html: The HTML of the URL
            status_code: The status code of the URL returned

        Returns:
            Tuple of (is_blocked, indicators). Returns (False, []) if no
            blocking detected.

        """
        if status_code in (403, 429, 503):
            return True, [f'HTTP {status_code}']

        html_check = html[:2000].lower()
        strict_indicators = {
            'challenge-form': 'Cloudflare challenge',
            'cf-captcha': 'Cloudflare CAPTCHA',
            'access denied</title>': 'Access denied page',
            'rate limit exceeded': 'Rate limit',
            'please verify you are human': 'Human verification',
        }
        found = [message for indicator, message in strict_indicators.items() if indicator in html_check]
        return bool(found), found
