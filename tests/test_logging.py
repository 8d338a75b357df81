"""
Tests for logging setup and run-progress sinks.
"""

import logging
from pathlib import Path

import pytest

from hostforge.core.observability.log_sink import LoggingSink, LogSink, RecordingSink, emit
from hostforge.core.observability.logging_config import parse_level, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in list(root.handlers):
        root.removeHandler(handler)
        if handler not in handlers:
            handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
    logging.raiseExceptions = True


# ── setup_logging ───────────────────────────────────────────────────


class TestSetupLogging:
    def test_default_is_warning(self, restore_root_logger):
        assert setup_logging(env={}) == logging.WARNING
        assert restore_root_logger.level == logging.WARNING

    def test_env_level(self, restore_root_logger):
        assert setup_logging(env={"HOSTFORGE_LOG_LEVEL": "debug"}) == logging.DEBUG

    def test_argument_beats_env(self, restore_root_logger):
        assert setup_logging(level="ERROR", env={"HOSTFORGE_LOG_LEVEL": "DEBUG"}) == logging.ERROR

    def test_replaces_handlers(self, restore_root_logger):
        setup_logging(env={})
        setup_logging(env={})
        assert len(restore_root_logger.handlers) == 1

    def test_log_file(self, restore_root_logger, tmp_path: Path):
        log_file = tmp_path / "hostforge.log"
        setup_logging(
            env={"HOSTFORGE_LOG_FILE": str(log_file), "HOSTFORGE_LOG_FILE_LEVEL": "DEBUG"}
        )
        assert restore_root_logger.level == logging.DEBUG
        logging.getLogger("hostforge.test").debug("written to file only")
        for handler in restore_root_logger.handlers:
            handler.flush()
        assert "written to file only" in log_file.read_text()

    def test_third_party_quieted(self, restore_root_logger):
        setup_logging(level="INFO", env={})
        assert logging.getLogger("urllib3").level == logging.WARNING


class TestParseLevel:
    def test_names(self):
        assert parse_level("info") == logging.INFO
        assert parse_level(" Warning ") == logging.WARNING

    def test_unknown(self):
        assert parse_level("chatty") == logging.WARNING
        assert parse_level(None) == logging.WARNING
        assert parse_level("BASIC_FORMAT") == logging.WARNING


# ── Sinks ───────────────────────────────────────────────────────────


class TestSinks:
    def test_logging_sink(self, caplog):
        with caplog.at_level(logging.INFO, logger="hostforge.run"):
            LoggingSink().log("warning", "backup skipped")
        assert caplog.records[-1].levelno == logging.WARNING
        assert caplog.records[-1].getMessage() == "backup skipped"

    def test_logging_sink_unknown_level(self, caplog):
        with caplog.at_level(logging.INFO, logger="hostforge.run"):
            LoggingSink().log("loud", "hello")
        assert caplog.records[-1].levelno == logging.INFO

    def test_recording_sink(self):
        sink = RecordingSink()
        sink.log("info", "a")
        sink.log("error", "b")
        assert sink.messages() == ["a", "b"]
        assert sink.messages("error") == ["b"]
        assert isinstance(sink, LogSink)

    def test_emit_swallows_failures(self):
        class Broken:
            def log(self, level, message):
                raise RuntimeError("closed")

        emit(Broken(), "info", "ignored")
        emit(None, "info", "ignored")
