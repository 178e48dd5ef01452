"""
Tests for observability — logging setup and the progress transcript.
"""

import logging
from pathlib import Path

import pytest

from ecsetup.core.models.result import PipelineResult, PipelineState
from ecsetup.core.observability.logging_config import PROGRESS_LOGGER, _parse_level, setup_logging
from ecsetup.core.services.ec_setup.progress import ProgressReporter


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestParseLevel:
    def test_names(self):
        assert _parse_level("debug") == logging.DEBUG
        assert _parse_level("ERROR") == logging.ERROR

    def test_fallback(self):
        assert _parse_level(None) == logging.WARNING
        assert _parse_level("chatty") == logging.WARNING


class TestSetupLogging:
    def test_console_only(self):
        setup_logging("INFO")
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.level == logging.INFO

    def test_file_level_lowers_root(self, tmp_path: Path):
        log_file = tmp_path / "ecsetup.log"
        setup_logging("WARNING", log_file=str(log_file), log_file_level="DEBUG")

        root = logging.getLogger()
        assert len(root.handlers) == 2
        assert root.level == logging.DEBUG

    def test_progress_transcript_in_file(self, tmp_path: Path):
        log_file = tmp_path / "ecsetup.log"
        setup_logging("ERROR", log_file=str(log_file), log_file_level="DEBUG")

        reporter = ProgressReporter.synchronous(lambda _line: None)
        reporter.emit("3/6 Download driver source...")
        reporter.close(PipelineResult.success(PipelineState.READY))
        for handler in logging.getLogger().handlers:
            handler.flush()

        content = log_file.read_text()
        assert PROGRESS_LOGGER in content
        assert "3/6 Download driver source..." in content

    def test_progress_kept_off_console(self, tmp_path: Path):
        log_file = tmp_path / "ecsetup.log"
        setup_logging("DEBUG", log_file=str(log_file))

        console, file_handler = logging.getLogger().handlers
        progress = logging.LogRecord(PROGRESS_LOGGER, logging.DEBUG, __file__, 1, "make: ok", None, None)
        other = logging.LogRecord("ecsetup.main", logging.DEBUG, __file__, 1, "hello", None, None)

        assert console.filter(progress) is False
        assert console.filter(other)
        assert file_handler.filter(progress)
