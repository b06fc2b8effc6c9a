"""Tests for structured logging setup."""

from __future__ import annotations

import json
import logging

import pytest
import structlog

from spear.utils.logging import setup_logging

pytestmark = pytest.mark.usefixtures("restore_spear_logger")


class TestSetupLogging:
    def test_console_output_on_stderr(self, capfd):
        """setup_logging() writes to stderr, leaving stdout for results."""
        setup_logging("DEBUG")
        logging.getLogger("spear.test_console").info("hello console")
        captured = capfd.readouterr()
        assert "hello console" in captured.err
        assert "hello console" not in captured.out

    def test_log_level_propagation(self):
        setup_logging("WARNING")
        assert logging.getLogger("spear").level == logging.WARNING

    def test_unknown_level_defaults_to_info(self):
        setup_logging("CHATTY")
        assert logging.getLogger("spear").level == logging.INFO

    def test_json_mode(self, capfd):
        setup_logging("INFO", log_json=True)
        logging.getLogger("spear.test_json").info("json test")
        err = capfd.readouterr().err
        for line in err.strip().splitlines():
            if "json test" in line:
                data = json.loads(line)
                assert data["event"] == "json test"
                break
        else:
            pytest.fail("no JSON line with the message")

    def test_file_logging(self, tmp_path):
        log_path = tmp_path / "spear.log"
        setup_logging("INFO", log_file=str(log_path))
        logging.getLogger("spear.test_file").info("file test message")
        for handler in logging.getLogger("spear").handlers:
            handler.flush()
        assert "file test message" in log_path.read_text()

    def test_file_creates_parent_dirs(self, tmp_path):
        log_path = tmp_path / "subdir" / "deep" / "spear.log"
        setup_logging("INFO", log_file=str(log_path))
        logging.getLogger("spear.test_dir").info("dir test")
        for handler in logging.getLogger("spear").handlers:
            handler.flush()
        assert log_path.exists()

    def test_repeated_setup_no_duplicate_handlers(self):
        setup_logging("INFO")
        count1 = len(logging.getLogger("spear").handlers)
        setup_logging("INFO")
        assert len(logging.getLogger("spear").handlers) == count1

    def test_does_not_propagate_to_root(self):
        setup_logging("INFO")
        assert logging.getLogger("spear").propagate is False

    def test_bound_context_reaches_stdlib_records(self, capfd):
        setup_logging("INFO", log_json=True)
        with structlog.contextvars.bound_contextvars(scenario="default"):
            logging.getLogger("spear.test_context").info("bound test")
        logging.getLogger("spear.test_context").info("unbound test")
        lines = {
            data["event"]: data
            for data in (
                json.loads(line) for line in capfd.readouterr().err.splitlines()
                if line.startswith("{")
            )
        }
        assert lines["bound test"]["scenario"] == "default"
        assert "scenario" not in lines["unbound test"]
