"""Unit tests for diagnostic command logging setup"""

import logging

import pytest

from pdfpoppler import __version__
from pdfpoppler.common.logging_setup import (
    PACKAGE_LOGGER,
    logFormatWithVersion_get,
    logging_setup,
    logLevel_parse,
)


@pytest.fixture
def package_logger():
    """Package logger restored to its prior state after the test"""
    logger = logging.getLogger(PACKAGE_LOGGER)
    saved = (list(logger.handlers), logger.level, logger.propagate)
    yield logger
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    handlers, level, propagate = saved
    for handler in handlers:
        logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = propagate


class TestLoggingSetup:
    """Test handler wiring on the package logger"""

    def test_configures_package_logger_only(self, package_logger):
        """The root logger keeps its handlers"""
        root_handlers = list(logging.getLogger().handlers)
        configured = logging_setup("debug", "%(levelname)s %(message)s", None)
        assert configured is package_logger
        assert package_logger.level == logging.DEBUG
        assert not package_logger.propagate
        assert len(package_logger.handlers) == 1
        assert logging.getLogger().handlers == root_handlers

    def test_repeated_setup_replaces_handlers(self, package_logger, tmp_path):
        """A second call does not stack handlers"""
        log_file = tmp_path / "pdfpoppler.log"
        logging_setup("INFO", "%(message)s", str(log_file))
        assert len(package_logger.handlers) == 2
        logging_setup("WARNING", "%(message)s", None)
        assert len(package_logger.handlers) == 1
        assert package_logger.level == logging.WARNING

    def test_file_handler_receives_module_records(self, package_logger, tmp_path):
        """Records from module loggers reach the log file"""
        log_file = tmp_path / "pdfpoppler.log"
        logging_setup("INFO", "%(name)s %(message)s", str(log_file))
        logging.getLogger("pdfpoppler.process.lifecycle").info("released")
        for handler in package_logger.handlers:
            handler.flush()
        assert "pdfpoppler.process.lifecycle released" in log_file.read_text()

    def test_unknown_level_rejected(self, package_logger):
        """Unknown level names raise ValueError"""
        with pytest.raises(ValueError, match="Unknown log level: LOUD"):
            logging_setup("LOUD", "%(message)s", None)


class TestLogFormat:
    """Test format helpers"""

    def test_version_follows_timestamp(self):
        """The version tag is injected after asctime"""
        assert logFormatWithVersion_get("%(asctime)s %(message)s") == (
            f"%(asctime)s [v{__version__}] %(message)s"
        )

    def test_format_without_timestamp_unchanged(self):
        """Formats without asctime are left alone"""
        assert logFormatWithVersion_get("%(message)s") == "%(message)s"

    def test_level_names(self):
        """Level names are case-insensitive"""
        assert logLevel_parse("error") == logging.ERROR
        assert logLevel_parse("CRITICAL") == logging.CRITICAL
