"""Custom exceptions for pagescoop."""


class PagescoopError(Exception):
    """Base class for all pagescoop exceptions."""

    pass


class SelectorSyntaxError(PagescoopError):
    """Raised when a selector segment cannot be matched by the CSS engine."""

    def __init__(self, selector: str, reason: str):
        """Initialize selector syntax error.

        Args:
            selector: Base selector that was rejected
            reason: Message from the underlying matcher

        """
        self.selector = selector
        self.reason = reason
        super().__init__(f"Invalid selector '{selector}': {reason}")


class ElementNotFoundError(PagescoopError):
    """Raised when a wait-for target never appears on the page."""

    def __init__(self, selector: str, attempts: int):
        """Initialize element-not-found error.

        Args:
            selector: Selector that was polled for
            attempts: Number of checks performed before giving up

        """
        self.selector = selector
        self.attempts = attempts
        super().__init__(f'Element {selector} not found within time limit')


class ImageFetchError(PagescoopError):
    """Raised when an image cannot be downloaded."""

    def __init__(self, url: str, reason: str):
        """Initialize image fetch error.

        Args:
            url: Absolute image URL
            reason: Why the download failed

        """
        self.url = url
        self.reason = reason
        super().__init__(f'Failed to fetch image {url}: {reason}')


class BotDetectionError(PagescoopError):
    """Raised when bot detection is triggered."""

    def __init__(self, url: str, status_code: int, indicators: list[str]):
        """Initialize bot detection error.

        Args:
            url: URL where bot detection was triggered
            status_code: HTTP status code received
            indicators: List of bot detection indicators found

        """
        self.url = url
        self.status_code = status_code
        self.indicators = indicators
        super().__init__(f'Bot detection triggered on {url} (status={status_code}): {", ".join(indicators)}')


class CommandError(PagescoopError):
    """Raised when a scrape job or one of its commands is malformed."""

    pass


class PageLoadError(PagescoopError):
    """Raised when a page cannot be loaded."""

    def __init__(self, url: str, reason: str):
        """Initialize page load error.

        Args:
            url: URL that failed to load
            reason: Why it failed

        """
        self.url = url
        self.reason = reason
        super().__init__(f'Failed to load {url}: {reason}')
