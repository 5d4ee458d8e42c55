"""Tests for server logging configuration."""

import logging

import pytest

from ottalika.services.logging import NOISY_LOGGERS, resolve_level, setup_server_logging


@pytest.fixture
def root_logger():
    """Root logger with handlers and levels restored after the test."""
    root = logging.getLogger()
    original_handlers = root.handlers.copy()
    original_level = root.level
    noisy_levels = {name: logging.getLogger(name).level for name in NOISY_LOGGERS}
    yield root
    for handler in root.handlers[:]:
        handler.close()
        root.removeHandler(handler)
    for handler in original_handlers:
        root.addHandler(handler)
    root.setLevel(original_level)
    for name, level in noisy_levels.items():
        logging.getLogger(name).setLevel(level)


class TestResolveLevel:
    @pytest.mark.parametrize(
        "name, expected",
        [("warning", logging.WARNING), ("DEBUG", logging.DEBUG), (logging.ERROR, logging.ERROR)],
    )
    def test_known_levels(self, name, expected):
        assert resolve_level(name) == expected

    @pytest.mark.parametrize("name", ["chatty", "", None])
    def test_unknown_falls_back_to_info(self, name):
        assert resolve_level(name) == logging.INFO


class TestSetupServerLogging:
    """Dual stdout + file output on the root logger."""

    def test_creates_log_directory(self, root_logger, tmp_path):
        log_file = tmp_path / "nested" / "server.log"
        setup_server_logging(str(log_file))
        assert log_file.parent.is_dir()

    def test_installs_stdout_and_file_handlers(self, root_logger, tmp_path):
        setup_server_logging(str(tmp_path / "server.log"), level="info")

        kinds = sorted(type(h).__name__ for h in root_logger.handlers)
        assert kinds == ["FileHandler", "StreamHandler"]
        assert root_logger.level == logging.INFO
        assert all(h.level == logging.INFO for h in root_logger.handlers)

    def test_writes_formatted_records(self, root_logger, tmp_path):
        log_file = tmp_path / "server.log"
        setup_server_logging(str(log_file))

        logging.getLogger("ottalika.services.payment_service").warning("Duplicate payment for apartment 1")

        contents = log_file.read_text()
        assert "ottalika.services.payment_service - WARNING - Duplicate payment" in contents
        assert contents.startswith("[20")

    def test_noisy_loggers_quieted(self, root_logger, tmp_path):
        setup_server_logging(str(tmp_path / "server.log"), level="INFO")
        assert logging.getLogger("uvicorn.access").level == logging.WARNING

        setup_server_logging(str(tmp_path / "server.log"), level="DEBUG")
        assert logging.getLogger("uvicorn.access").level == logging.DEBUG

    def test_repeated_setup_does_not_duplicate_handlers(self, root_logger, tmp_path):
        stray = logging.StreamHandler()
        root_logger.addHandler(stray)

        setup_server_logging(str(tmp_path / "server.log"))
        setup_server_logging(str(tmp_path / "server.log"))

        assert len(root_logger.handlers) == 2
        assert stray not in root_logger.handlers
