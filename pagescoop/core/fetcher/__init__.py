"""Fetcher factory and exports."""

from pagescoop.core.fetcher.base import Page, PageFetcher, node_xpath
from pagescoop.core.fetcher.playwright import BrowserPage, PlaywrightFetcher
from pagescoop.core.fetcher.simple import SimpleFetcher, StaticPage


def create_fetcher(fetcher_type: str = 'simple', **kwargs) -> PageFetcher:
    """Create a page fetcher.

    Args:
        fetcher_type: Type of fetcher ('simple', 'playwright')
        **kwargs: Additional arguments for the fetcher

    Returns:
        PageFetcher instance

    """
    fetchers: dict[str, type[PageFetcher]] = {
        'simple': SimpleFetcher,
        'playwright': PlaywrightFetcher,
    }

    if fetcher_type not in fetchers:
        raise ValueError(f'Unknown fetcher type: {fetcher_type}. Choose from: {list(fetchers.keys())}')

    return fetchers[fetcher_type](**kwargs)


__all__ = [
    'BrowserPage',
    'Page',
    'PageFetcher',
    'PlaywrightFetcher',
    'SimpleFetcher',
    'StaticPage',
    'create_fetcher',
    'node_xpath',
]
