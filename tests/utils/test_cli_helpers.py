"""Tests for CLI output helpers and logging setup."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
import typer

from gitgen.utils import cli_utils, log_setup
from gitgen.utils.cli_utils import exit_with_error, handle_keyboard_interrupt, loading_spinner, show_error

pytestmark = pytest.mark.unit


@pytest.fixture
def summaries(monkeypatch: pytest.MonkeyPatch) -> list[tuple[str, str]]:
	"""Capture error and warning summaries instead of printing them."""
	captured: list[tuple[str, str]] = []
	monkeypatch.setattr(cli_utils, "display_error_summary", lambda text: captured.append(("error", text)))
	monkeypatch.setattr(cli_utils, "display_warning_summary", lambda text: captured.append(("warning", text)))
	return captured


def test_show_error_includes_exception_details(summaries: list[tuple[str, str]]) -> None:
	"""The exception text is appended to the summary."""
	show_error("Could not read settings", ValueError("bad yaml"))

	assert summaries == [("error", "Could not read settings\n\nDetails: bad yaml")]


def test_exit_with_error_raises_exit(summaries: list[tuple[str, str]]) -> None:
	"""The summary is shown before exiting with the given code."""
	with pytest.raises(typer.Exit) as exc_info:
		exit_with_error("Model 'x' not found")

	assert exc_info.value.exit_code == 1
	assert summaries == [("error", "Model 'x' not found")]


def test_keyboard_interrupt_exits_130(monkeypatch: pytest.MonkeyPatch) -> None:
	"""Cancellation by the user uses the conventional exit code."""
	printed: list[str] = []
	monkeypatch.setattr(cli_utils.console, "print", lambda *args, **_: printed.append(str(args[0])))

	with pytest.raises(typer.Exit) as exc_info:
		handle_keyboard_interrupt()

	assert exc_info.value.exit_code == 130
	assert any("cancelled" in line for line in printed)


def test_spinner_is_silent_under_pytest() -> None:
	"""The spinner context runs its body without drawing anything."""
	ran = []
	with loading_spinner("Working..."):
		ran.append(True)

	assert ran == [True]


def test_setup_logging_with_file(tmp_path: Path) -> None:
	"""A log file receives debug output even when the console is quiet."""
	log_file = tmp_path / "logs" / "gitgen.log"
	root = logging.getLogger()
	original_handlers, original_level = root.handlers[:], root.level
	try:
		log_setup.setup_logging(is_verbose=False, log_to_console=False, log_file_path=log_file)
		logging.getLogger("gitgen.test").debug("written to file")
		for handler in root.handlers:
			handler.flush()
	finally:
		for handler in root.handlers[:]:
			root.removeHandler(handler)
			handler.close()
		for handler in original_handlers:
			root.addHandler(handler)
		root.setLevel(original_level)

	assert "written to file" in log_file.read_text(encoding="utf-8")
	assert logging.getLogger("httpx").level == logging.WARNING


def test_default_log_file_name() -> None:
	"""Log files are timestamped under the gitgen log directory."""
	path = log_setup.default_log_file()

	assert path.name.startswith("gitgen_")
	assert path.suffix == ".log"
