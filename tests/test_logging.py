"""
Tests for logging setup.
"""

import logging

import pytest

from ops.logging import setup_logging


@pytest.fixture
def clean_root_logger():
    root = logging.getLogger()
    saved_handlers = root.handlers[:]
    saved_level = root.level
    yield root
    for handler in root.handlers:
        handler.close()
    root.handlers = saved_handlers
    root.setLevel(saved_level)


def test_creates_log_directory_and_file_handler(tmp_path, clean_root_logger):
    log_path = tmp_path / "logs" / "bin_monitor.log"

    setup_logging(str(log_path), "DEBUG")

    assert log_path.parent.is_dir()
    assert clean_root_logger.level == logging.DEBUG
    assert any(isinstance(h, logging.FileHandler) for h in clean_root_logger.handlers)


def test_stream_only_without_path(clean_root_logger):
    setup_logging(None, "WARNING")

    assert clean_root_logger.level == logging.WARNING
    assert not any(isinstance(h, logging.FileHandler) for h in clean_root_logger.handlers)
    assert logging.getLogger("urllib3").level == logging.WARNING
