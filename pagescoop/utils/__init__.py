"""Utility components for pagescoop."""

from pagescoop.utils.exceptions import (
    BotDetectionError,
    CommandError,
    ElementNotFoundError,
    ImageFetchError,
    PageLoadError,
    PagescoopError,
    SelectorSyntaxError,
)
from pagescoop.utils.files import init_pagescoop
from pagescoop.utils.headers import HeaderGenerator, UserAgentRotator
from pagescoop.utils.retry import get_retryer, log_retry, poll_until

__all__ = [
    'BotDetectionError',
    'CommandError',
    'ElementNotFoundError',
    'HeaderGenerator',
    'ImageFetchError',
    'PageLoadError',
    'PagescoopError',
    'SelectorSyntaxError',
    'UserAgentRotator',
    'get_retryer',
    'init_pagescoop',
    'log_retry',
    'poll_until',
]
