#!/usr/bin/env python3
"""
Test suite for utils.py core utility functions.

Tests cover:
- Logging setup and line format
- Screen helpers
- Confirmation prompts
- Directory structure
- Standardized error handling
"""

import logging
import re
import sys
from pathlib import Path

import pytest
from botocore.exceptions import ClientError, NoCredentialsError

# Add parent directory to path to import utils
sys.path.insert(0, str(Path(__file__).parent.parent))
import utils

LINE_PATTERN = re.compile(r"^\[\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\] \[(\w+)\] (.*)$")


@pytest.fixture
def log_file(tmp_path):
    path = tmp_path / "logs" / "aws-toolkit.log"
    utils.setup_logging(path)
    yield path
    utils.shutdown_logging()


def _lines(path):
    return path.read_text(encoding="utf-8").splitlines()


class TestLogging:
    """Test setup_logging() and the log_* helpers."""

    def test_creates_parent_directory(self, log_file):
        utils.get_logger().info("hello")
        assert log_file.parent.is_dir()

    def test_line_format(self, log_file):
        utils.get_logger().info("hello world")
        [line] = _lines(log_file)
        match = LINE_PATTERN.match(line)
        assert match, line
        assert match.groups() == ("INFO", "hello world")

    def test_levels(self, log_file):
        utils.log_warning("careful")
        utils.log_error("broken")
        levels = [LINE_PATTERN.match(line).group(1) for line in _lines(log_file)]
        assert levels == ["WARNING", "ERROR"]

    def test_debug_is_not_written_by_default(self, log_file):
        utils.log_debug("noise")
        utils.log_system_info()
        assert _lines(log_file) == []

    def test_error_with_exception(self, log_file):
        utils.log_error("Upload failed", ValueError("bad path"))
        assert _lines(log_file)[0].endswith("[ERROR] Upload failed: bad path")

    def test_appends_across_sessions(self, tmp_path):
        path = tmp_path / "toolkit.log"
        utils.setup_logging(path)
        utils.get_logger().info("first run")
        utils.setup_logging(path)
        utils.get_logger().info("second run")
        utils.shutdown_logging()

        assert [LINE_PATTERN.match(line).group(2) for line in _lines(path)] == ["first run", "second run"]

    def test_library_loggers_share_the_file(self, log_file):
        logging.getLogger("tklib.config").warning("settings.json not found")
        assert _lines(log_file)[0].endswith("[WARNING] settings.json not found")

    def test_script_start_and_end(self, log_file):
        utils.log_script_start("awstoolkit.py", "AWS Toolkit main menu")
        utils.log_script_end("awstoolkit.py")
        lines = _lines(log_file)
        assert lines[0].endswith("[INFO] SCRIPT START: awstoolkit.py - AWS Toolkit main menu")
        assert lines[1].endswith("[INFO] SCRIPT END: awstoolkit.py")

    def test_menu_selection(self, log_file):
        utils.log_menu_selection("2", "Upload file to S3 bucket")
        assert _lines(log_file)[0].endswith("[INFO] MENU SELECTION: 2 - Upload file to S3 bucket")

    def test_logger_without_setup_is_silent(self):
        utils.shutdown_logging()
        utils.get_logger().info("nowhere")


class TestFormatBox:
    def test_box_rows(self):
        rows = utils.format_box(["AWS Toolkit v1.0.0", "Everyday S3 & EC2 Operations"], width=40).splitlines()
        assert len(rows) == 4
        assert all(len(row) == 40 for row in rows)
        assert rows[0].startswith("╔") and rows[-1].endswith("╝")
        assert "AWS Toolkit v1.0.0" in rows[1]


class TestPromptForConfirmation:
    def test_empty_uses_default(self):
        assert utils.prompt_for_confirmation("Go?", default=False, prompt=lambda _t: "") is False
        assert utils.prompt_for_confirmation("Go?", default=True, prompt=lambda _t: "") is True

    def test_yes_answers(self):
        assert utils.prompt_for_confirmation(prompt=lambda _t: "y") is True
        assert utils.prompt_for_confirmation(prompt=lambda _t: " YES ") is True

    def test_other_answers(self):
        assert utils.prompt_for_confirmation(prompt=lambda _t: "n") is False
        assert utils.prompt_for_confirmation(prompt=lambda _t: "maybe") is False

    def test_prompt_text(self):
        seen = []
        utils.prompt_for_confirmation("Delete these buckets and all their contents?", prompt=lambda t: seen.append(t) or "")
        assert seen == ["Delete these buckets and all their contents? (y/N): "]


class TestEnsureDirectoryStructure:
    def test_creates_missing(self, tmp_path):
        created = utils.ensure_directory_structure(tmp_path)
        assert sorted(p.name for p in created) == ["config", "logs", "temp"]
        assert all((tmp_path / name).is_dir() for name in utils.TOOLKIT_DIRECTORIES)

    def test_idempotent(self, tmp_path):
        utils.ensure_directory_structure(tmp_path)
        assert utils.ensure_directory_structure(tmp_path) == []


class TestErrorHandling:
    """Test aws_error_handler() and handle_aws_operation()."""

    def test_decorator_returns_default(self, log_file):
        @utils.aws_error_handler("Listing buckets", default_return=[])
        def failing():
            raise ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, "ListBuckets")

        assert failing() == []
        assert _lines(log_file)[0].endswith("[ERROR] Listing buckets: AWS error [AccessDenied] denied")

    def test_decorator_credentials_message(self, log_file):
        @utils.aws_error_handler("Fetching identity")
        def failing():
            raise NoCredentialsError()

        assert failing() is None
        assert "No valid AWS credentials found" in _lines(log_file)[0]

    def test_decorator_reraise(self, log_file):
        @utils.aws_error_handler("Exploding", reraise=True)
        def failing():
            raise RuntimeError("kaboom")

        with pytest.raises(RuntimeError):
            failing()
        assert _lines(log_file)[0].endswith("[ERROR] Exploding: Unexpected error: kaboom")

    def test_decorator_passes_through_results(self):
        @utils.aws_error_handler("Adding")
        def add(a, b):
            return a + b

        assert add(2, 3) == 5

    def test_context_manager_suppress(self, log_file):
        with utils.handle_aws_operation("Listing remaining buckets", suppress_errors=True):
            raise ClientError({"Error": {"Code": "Throttling", "Message": "slow down"}}, "ListBuckets")
        assert "[Throttling] slow down" in _lines(log_file)[0]

    def test_context_manager_reraise(self, log_file):
        with pytest.raises(ValueError):
            with utils.handle_aws_operation("Parsing"):
                raise ValueError("bad")
