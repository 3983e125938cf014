"""Cleanup of raw LLM output into a usable commit message."""

from __future__ import annotations

import re

THINK_BLOCK_PATTERN = re.compile(r"<(think|thinking)>.*?</\1>", re.IGNORECASE | re.DOTALL)
CODE_FENCE_PATTERN = re.compile(r"^```[\w-]*\n?|\n?```$")
COMMIT_PREFIX_PATTERN = re.compile(r"^(commit message|message)\s*:\s*", re.IGNORECASE)

SHELL_REPLACEMENTS = {
	'"': "'",
	"`": "'",
}


def clean_llm_response(message: str) -> str:
	"""Strip reasoning blocks and surrounding whitespace from a raw response."""
	return THINK_BLOCK_PATTERN.sub("", message).strip()


def clean_commit_message(message: str) -> str:
	"""
	Turn a raw response into a single-paragraph, shell-safe commit message.

	Removes reasoning blocks, code fences, a leading "Commit message:" label
	and wrapping quotes, collapses all whitespace to single spaces and swaps
	characters that break ``git commit -m "..."``.

	"""
	cleaned = clean_llm_response(message)
	cleaned = CODE_FENCE_PATTERN.sub("", cleaned).strip()
	cleaned = COMMIT_PREFIX_PATTERN.sub("", cleaned)

	while len(cleaned) >= 2 and cleaned[0] == cleaned[-1] and cleaned[0] in "\"'`":
		cleaned = cleaned[1:-1].strip()

	cleaned = " ".join(cleaned.split())
	for old, new in SHELL_REPLACEMENTS.items():
		cleaned = cleaned.replace(old, new)
	return cleaned
