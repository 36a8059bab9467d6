"""Pagescoop - selector-driven record extraction.

Describe a page with scope and field commands, get back a list of records.
"""

from pagescoop.config import ScrapeSettings
from pagescoop.core.extraction import FieldExtractor, ImageCapture, RecordAssembler
from pagescoop.core.fetcher import (
    BrowserPage,
    Page,
    PageFetcher,
    PlaywrightFetcher,
    SimpleFetcher,
    StaticPage,
    create_fetcher,
)
from pagescoop.core.pipeline import Scraper, extract_records
from pagescoop.core.selector import SelectorEngine, SelectorExpression, query_elements
from pagescoop.models import (
    ClickCommand,
    Command,
    FieldCommand,
    FillCommand,
    ImageDescriptor,
    ScopeCommand,
    ScrapeJob,
    ScrapeResult,
    WaitCommand,
    parse_command,
    parse_commands,
)
from pagescoop.storage import FileNameRegistry, ResultStorage
from pagescoop.utils import (
    BotDetectionError,
    CommandError,
    ElementNotFoundError,
    ImageFetchError,
    PageLoadError,
    PagescoopError,
    SelectorSyntaxError,
    init_pagescoop,
)

__all__ = [
    # Core components
    'Scraper',
    'extract_records',
    'SelectorEngine',
    'SelectorExpression',
    'query_elements',
    'FieldExtractor',
    'ImageCapture',
    'RecordAssembler',
    'ResultStorage',
    'FileNameRegistry',
    'ScrapeSettings',
    # Fetchers
    'BrowserPage',
    'Page',
    'PageFetcher',
    'PlaywrightFetcher',
    'SimpleFetcher',
    'StaticPage',
    'create_fetcher',
    # Models
    'ClickCommand',
    'Command',
    'FieldCommand',
    'FillCommand',
    'ImageDescriptor',
    'ScopeCommand',
    'ScrapeJob',
    'ScrapeResult',
    'WaitCommand',
    'parse_command',
    'parse_commands',
    # Errors
    'BotDetectionError',
    'CommandError',
    'ElementNotFoundError',
    'ImageFetchError',
    'PageLoadError',
    'PagescoopError',
    'SelectorSyntaxError',
    # Utilities
    'init_pagescoop',
]
