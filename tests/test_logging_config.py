"""Tests for logging setup"""
import logging

import pytest

from fell.logging_config import get_logger, setup_logging


@pytest.fixture
def restore_root_logger():
    root_logger = logging.getLogger()
    handlers, level = root_logger.handlers[:], root_logger.level
    yield root_logger
    root_logger.handlers = handlers
    root_logger.setLevel(level)


def format_from_worker(root_logger: logging.Logger) -> str:
    record = logging.LogRecord("vcs.git_backend", logging.INFO, __file__, 1, "A is clean", None, None)
    record.threadName = "fell_3"
    return root_logger.handlers[-1].format(record)


class TestSetupLogging:
    """Test console handler levels and formats."""

    def test_default_level_is_warning(self, restore_root_logger):
        setup_logging()
        assert restore_root_logger.level == logging.WARNING
        assert format_from_worker(restore_root_logger) == "[vcs.git_backend] A is clean"

    def test_verbose_records_show_worker_thread(self, restore_root_logger):
        setup_logging(verbose=True)
        assert restore_root_logger.level == logging.INFO
        assert format_from_worker(restore_root_logger) == "[fell_3] [vcs.git_backend] A is clean"

    def test_git_logger_quieted(self, restore_root_logger):
        setup_logging(verbose=True)
        assert logging.getLogger("git").level == logging.WARNING


def test_get_logger_strips_package_prefix():
    assert get_logger("fell.services.batch").name == "batch"
    assert get_logger("fell.core").name == "core"
