import logging

import pytest
from rich.console import Console
from rich.logging import RichHandler

from pagescoop.utils.logging import setup_local_logging


@pytest.fixture
def root_logger(mocker, tmp_path):
    mocker.patch('pagescoop.utils.logging.get_logs_path', return_value=tmp_path / 'logs')
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    yield root
    for handler in list(root.handlers):
        if handler not in saved_handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(saved_level)


def test_creates_run_log_file(root_logger, tmp_path):
    log_file = setup_local_logging('INFO')

    logging.getLogger('pagescoop.test').info('hello from the run log')
    for handler in root_logger.handlers:
        handler.flush()

    assert log_file.parent == tmp_path / 'logs'
    assert log_file.name.startswith('run_')
    assert 'hello from the run log' in log_file.read_text()
    assert root_logger.level == logging.INFO


def test_repeated_setup_does_not_stack_handlers(root_logger):
    setup_local_logging('DEBUG')
    before = len(root_logger.handlers)

    setup_local_logging('DEBUG')

    assert len(root_logger.handlers) == before


def test_console_handler_only_shows_warnings(root_logger):
    setup_local_logging('DEBUG', console=Console(quiet=True))

    rich_handlers = [h for h in root_logger.handlers if isinstance(h, RichHandler)]
    assert len(rich_handlers) == 1
    assert rich_handlers[0].level == logging.WARNING


def test_noisy_loggers_are_raised_to_warning(root_logger):
    setup_local_logging('DEBUG')

    assert logging.getLogger('urllib3').level == logging.WARNING
