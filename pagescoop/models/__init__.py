"""Pydantic models for scrape jobs, commands and results."""

from pagescoop.models.commands import (
    JOB_FLAGS,
    ClickCommand,
    Command,
    FieldCommand,
    FieldKind,
    FillCommand,
    ScopeCommand,
    ScrapeJob,
    WaitCommand,
    parse_command,
    parse_commands,
)
from pagescoop.models.results import FetchResult, ImageDescriptor, ScrapeResult, serialize_value

__all__ = [
    'ClickCommand',
    'Command',
    'FetchResult',
    'FieldCommand',
    'FieldKind',
    'FillCommand',
    'ImageDescriptor',
    'JOB_FLAGS',
    'ScopeCommand',
    'ScrapeJob',
    'ScrapeResult',
    'WaitCommand',
    'parse_command',
    'parse_commands',
    'serialize_value',
]
