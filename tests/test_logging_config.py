"""
Tests for logging setup — levels, formats, file output, package context.
"""

import datetime
import logging
import logging.handlers
from pathlib import Path

import pytest
from click.testing import CliRunner

from src.core.observability.logging_config import (
    _parse_level,
    daily_log_file,
    package_context,
    setup_logging,
)
from src.main import cli


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for h in root.handlers:
        if h not in handlers:
            h.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def _flush():
    for h in logging.getLogger().handlers:
        h.flush()


class TestParseLevel:
    @pytest.mark.parametrize("name,expected", [
        ("DEBUG", logging.DEBUG),
        ("info", logging.INFO),
        ("Error", logging.ERROR),
        ("bogus", logging.WARNING),
        ("", logging.WARNING),
        (None, logging.WARNING),
    ])
    def test_levels(self, name, expected):
        assert _parse_level(name) == expected


class TestSetupLogging:
    def test_default_warning_minimal_format(self):
        setup_logging()
        root = logging.getLogger()
        assert root.level == logging.WARNING
        [console] = root.handlers
        assert console.formatter._fmt == "%(message)s"

    def test_debug_format_has_line_numbers(self):
        setup_logging("DEBUG")
        [console] = logging.getLogger().handlers
        assert "%(lineno)d" in console.formatter._fmt

    def test_info_format_carries_context(self):
        setup_logging("INFO")
        [console] = logging.getLogger().handlers
        assert "%(context)s" in console.formatter._fmt

    def test_replaces_handlers(self):
        setup_logging("INFO")
        setup_logging("INFO")
        assert len(logging.getLogger().handlers) == 1

    def test_file_handler_with_own_level(self, tmp_path: Path):
        log_file = tmp_path / "logs" / "run.log"
        setup_logging("WARNING", log_file=log_file, log_file_level="DEBUG")

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        [fh] = [h for h in root.handlers if isinstance(h, logging.handlers.RotatingFileHandler)]
        assert fh.level == logging.DEBUG
        logging.getLogger("src.test").debug("to the file only")
        _flush()

        assert "to the file only" in log_file.read_text()

    def test_daily_log_file_name(self, tmp_path: Path):
        path = daily_log_file(tmp_path, today=datetime.date(2026, 3, 9))
        assert path == tmp_path / "run-2026-03-09.log"


class TestPackageContext:
    def test_records_tagged_inside_block(self, tmp_path: Path):
        log_file = tmp_path / "run.log"
        setup_logging("WARNING", log_file=log_file, log_file_level="INFO")
        log = logging.getLogger("src.test")

        with package_context("node", "install"):
            log.info("running script")
        log.info("after")
        _flush()

        lines = log_file.read_text().splitlines()
        assert lines[0].endswith("[install node] src.test: running script")
        assert lines[1].endswith("[INFO] src.test: after")

    def test_nested_blocks_restore(self, tmp_path: Path):
        log_file = tmp_path / "run.log"
        setup_logging("WARNING", log_file=log_file, log_file_level="INFO")
        log = logging.getLogger("src.test")

        with package_context("pm2", "install"):
            with package_context("node"):
                log.info("dependency")
            log.info("target")
        _flush()

        lines = log_file.read_text().splitlines()
        assert "[node] src.test: dependency" in lines[0]
        assert "[install pm2] src.test: target" in lines[1]


class TestCLILogging:
    def test_env_level(self, monkeypatch):
        monkeypatch.setenv("RUN_LOG_LEVEL", "ERROR")
        result = CliRunner().invoke(cli, ["list"])
        assert result.exit_code == 0
        assert logging.getLogger().level == logging.ERROR

    def test_debug_flag_wins(self, monkeypatch):
        monkeypatch.setenv("RUN_LOG_LEVEL", "ERROR")
        result = CliRunner().invoke(cli, ["--debug", "list"])
        assert result.exit_code == 0
        assert logging.getLogger().level == logging.DEBUG

    def test_log_dir_gets_daily_file(self, monkeypatch, tmp_path: Path):
        monkeypatch.setenv("RUN_LOG_DIR", str(tmp_path / "logs"))
        result = CliRunner().invoke(cli, ["list"])
        assert result.exit_code == 0
        assert daily_log_file(tmp_path / "logs").exists()
