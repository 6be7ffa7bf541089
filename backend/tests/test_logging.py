import logging

import pytest

from user_records.core.logging import LOG_FORMAT, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def test_setup_logging_installs_single_handler(restore_root_logger):
    setup_logging("debug")
    setup_logging("debug")

    root = restore_root_logger
    assert len(root.handlers) == 1
    assert root.level == logging.DEBUG
    assert root.handlers[0].formatter._fmt == LOG_FORMAT
