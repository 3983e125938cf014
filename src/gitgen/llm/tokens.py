"""
Rough token estimates for budgeting.

These are fixed character-ratio heuristics, not tokenizer-accurate counts.
They size previews, cost estimates and truncation budgets; billing figures
always come from the usage block the API returns.

"""

from __future__ import annotations

from gitgen.constants import (
	BASE_SYSTEM_PROMPT_CHARS,
	CHARS_PER_TOKEN,
	TRUNCATION_CHARS_PER_TOKEN,
	TRUNCATION_SAFETY_RATIO,
)


def estimate_tokens(text: str | None) -> int:
	"""Estimate the token count of ``text`` at roughly four characters per token."""
	if not text:
		return 0
	return len(text) // CHARS_PER_TOKEN


def estimate_system_prompt_tokens(system_prompt: str | None = None, custom_instruction: str | None = None) -> int:
	"""
	Estimate the tokens taken by the system prompt.

	Args:
	    system_prompt: The model's configured extra system prompt, if any
	    custom_instruction: The user's free-text instruction, if any

	Returns:
	    Estimated token count of the base prompt plus both extras

	"""
	size = BASE_SYSTEM_PROMPT_CHARS
	if custom_instruction and custom_instruction.strip():
		size += len(custom_instruction)
	if system_prompt and system_prompt.strip():
		size += len(system_prompt)
	return size // CHARS_PER_TOKEN


def tokens_to_char_budget(tokens: int) -> int:
	"""
	Convert a token allowance into a conservative character budget.

	Uses a tighter characters-per-token ratio than ``estimate_tokens`` and
	keeps a safety margin, so text cut to this budget should fit the allowance.

	"""
	if tokens <= 0:
		return 0
	return int(tokens * TRUNCATION_SAFETY_RATIO) * TRUNCATION_CHARS_PER_TOKEN
