"""Tests for the run logger."""
from __future__ import annotations

import logging
import re

import pytest

from exit_offboard.logger import RunLogger

LINE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2} - ")


def test_log_creates_directory_and_writes_timestamped_line(run_logger, log_path, console):
    assert not log_path.parent.exists()

    run_logger.log("Starting offboarding run.")

    lines = log_path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 1
    assert LINE_PATTERN.match(lines[0])
    assert lines[0].endswith(" - Starting offboarding run.")
    assert console.getvalue().strip() == lines[0]


def test_log_appends_across_instances(log_path, console):
    with RunLogger(log_path, stream=console) as first:
        first.log("first run")
    with RunLogger(log_path, stream=console) as second:
        second.warning("second run")
        second.error("third line")

    lines = log_path.read_text(encoding="utf-8").splitlines()
    assert [line.split(" - ", 1)[1] for line in lines] == [
        "first run",
        "WARNING: second run",
        "ERROR: third line",
    ]


def test_loggers_for_different_paths_do_not_share_output(tmp_path, console):
    one = RunLogger(tmp_path / "one.log", stream=console)
    two = RunLogger(tmp_path / "two.log", stream=console)
    try:
        one.log("only in one")
        two.log("only in two")
    finally:
        one.close()
        two.close()

    assert "only in two" not in (tmp_path / "one.log").read_text(encoding="utf-8")
    assert "only in one" not in (tmp_path / "two.log").read_text(encoding="utf-8")


class _FullDiskStream:
    def write(self, text):
        raise OSError("disk full")

    def flush(self):
        pass


def test_write_failure_propagates(log_path):
    logger = RunLogger(log_path, stream=_FullDiskStream())
    try:
        with pytest.raises(OSError, match="disk full"):
            logger.log("hello")
    finally:
        logger.close()


def test_run_loggers_are_not_registered_globally(tmp_path, console):
    before = set(logging.Logger.manager.loggerDict)

    for index in range(3):
        with RunLogger(tmp_path / f"run{index}.log", stream=console) as logger:
            logger.log("line")

    assert set(logging.Logger.manager.loggerDict) == before
