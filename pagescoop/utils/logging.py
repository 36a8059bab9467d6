"""Logging configuration for pagescoop."""

import logging
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from pagescoop.utils.files import get_logs_path

# Chatty at DEBUG and irrelevant to scrape results
NOISY_LOGGERS = ('urllib3', 'PIL', 'asyncio')

_HANDLER_MARKER = '_pagescoop_handler'


def _resolve_level(level: str) -> int:
    if level.upper() == 'ALL':
        return logging.NOTSET
    return getattr(logging, level.upper(), logging.DEBUG)


def setup_local_logging(level: str = 'DEBUG', console: Console | None = None) -> Path:
    """Set up the run log file, and optionally echo warnings to the console.

    Creates .pagescoop/logs/run_<timestamp>.log and attaches it to the root
    logger. Handlers from an earlier call are replaced, so repeated runs in one
    process do not write every line twice.

    Args:
        level: Level for the log file (e.g. 'DEBUG', 'INFO', 'ALL'). Defaults to 'DEBUG'.
        console: Rich console that should also show WARNING and above
            (skipped selectors, failed image downloads).

    Returns:
        Path: The path to the created log file.

    """
    logs_dir = get_logs_path()
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_file = logs_dir / f'run_{datetime.now().strftime("%Y%m%d_%H%M%S")}.log'

    numeric_level = _resolve_level(level)
    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in list(root_logger.handlers):
        if getattr(handler, _HANDLER_MARKER, False):
            root_logger.removeHandler(handler)
            handler.close()

    file_handler = logging.FileHandler(log_file, encoding='utf-8')
    file_handler.setLevel(numeric_level)
    file_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
    setattr(file_handler, _HANDLER_MARKER, True)
    root_logger.addHandler(file_handler)

    if console is not None:
        console_handler = RichHandler(console=console, level=logging.WARNING, show_path=False, markup=False)
        setattr(console_handler, _HANDLER_MARKER, True)
        root_logger.addHandler(console_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    return log_file
