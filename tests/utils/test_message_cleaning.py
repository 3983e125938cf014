"""Tests for commit message cleanup."""

from __future__ import annotations

import pytest

from gitgen.utils.message_cleaning import clean_commit_message, clean_llm_response

pytestmark = pytest.mark.unit


def test_strips_reasoning_blocks() -> None:
	"""Think blocks are removed wherever they appear."""
	raw = "<think>\nLet me look at the diff.\n</think>\nAdd retry logic to client"

	assert clean_llm_response(raw) == "Add retry logic to client"
	assert clean_commit_message("<THINKING>hm</THINKING> Fix typo") == "Fix typo"


@pytest.mark.parametrize(
	("raw", "expected"),
	[
		("```\nAdd login form\n```", "Add login form"),
		("```text\nAdd login form\n```", "Add login form"),
		("Commit message: Add login form", "Add login form"),
		('"Add login form"', "Add login form"),
		("`'Add login form'`", "Add login form"),
		("Add login\n\nform   validation", "Add login form validation"),
	],
)
def test_wrapping_is_removed(raw: str, expected: str) -> None:
	"""Fences, labels, quotes and line breaks do not survive."""
	assert clean_commit_message(raw) == expected


def test_shell_unsafe_characters_are_replaced() -> None:
	"""Double quotes and backticks become single quotes."""
	cleaned = clean_commit_message('Rename "foo" to `bar` in parser')

	assert cleaned == "Rename 'foo' to 'bar' in parser"
	assert '"' not in cleaned
	assert "`" not in cleaned


def test_empty_response_stays_empty() -> None:
	"""Whitespace-only output cleans to an empty string."""
	assert clean_commit_message("  \n\t ") == ""
