"""Tests for the token estimator."""

from __future__ import annotations

import pytest

from gitgen.llm.tokens import estimate_system_prompt_tokens, estimate_tokens, tokens_to_char_budget


@pytest.mark.unit
@pytest.mark.parametrize(("text", "expected"), [(None, 0), ("", 0), ("abc", 0), ("abcd", 1), ("x" * 41, 10)])
def test_estimate_tokens(text: str | None, expected: int) -> None:
	"""Roughly four characters per token, rounded down."""
	assert estimate_tokens(text) == expected


@pytest.mark.unit
class TestSystemPromptEstimate:
	"""Estimated size of the system prompt."""

	def test_base_prompt(self) -> None:
		"""The base prompt alone is 1600 characters."""
		assert estimate_system_prompt_tokens() == 400

	def test_extras_are_added(self) -> None:
		"""Instruction and model prompt both add their length."""
		assert estimate_system_prompt_tokens("y" * 80, "x" * 40) == 430

	def test_blank_extras_are_ignored(self) -> None:
		"""Whitespace-only extras do not count."""
		assert estimate_system_prompt_tokens("   ", "\n") == 400


@pytest.mark.unit
@pytest.mark.parametrize(("tokens", "expected"), [(1000, 2700), (7600, 20520), (1, 0), (0, 0), (-50, 0)])
def test_tokens_to_char_budget(tokens: int, expected: int) -> None:
	"""Three characters per token after a ten percent margin."""
	assert tokens_to_char_budget(tokens) == expected
