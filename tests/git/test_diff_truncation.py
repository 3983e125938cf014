"""Tests for structure-aware diff truncation."""

from __future__ import annotations

import pytest

from gitgen.git import parse_diff_segments, truncate_diff
from gitgen.git.diff_truncation import cut_body


def _file_diff(name: str, lines: int, hunks: int = 1) -> str:
	parts = [
		f"diff --git a/{name} b/{name}\n",
		f"index 1111111..2222222 100644\n--- a/{name}\n+++ b/{name}\n",
	]
	per_hunk = max(lines // hunks, 1)
	for hunk in range(hunks):
		parts.append(f"@@ -{hunk * 100 + 1},{per_hunk} +{hunk * 100 + 1},{per_hunk} @@\n")
		parts.extend(f"+line {hunk}-{index} of {name} with some padding text\n" for index in range(per_hunk))
	return "".join(parts)


def _multi_file_diff(count: int, lines: int) -> str:
	return "".join(_file_diff(f"src/module_{index}.py", lines) for index in range(count))


@pytest.mark.unit
class TestParsing:
	"""Splitting diffs into per-file segments."""

	def test_segments_follow_file_headers(self) -> None:
		"""Each 'diff --git' line starts a segment."""
		diff = _multi_file_diff(3, 5)

		segments = parse_diff_segments(diff)

		assert [segment.path for segment in segments] == [
			"src/module_0.py",
			"src/module_1.py",
			"src/module_2.py",
		]
		assert "".join(segment.header + segment.body for segment in segments) == diff

	def test_diff_without_headers(self) -> None:
		"""Text without file headers has no segments."""
		assert parse_diff_segments("just some text\n") == []


@pytest.mark.unit
class TestTruncation:
	"""Fitting a diff into a budget."""

	def test_diff_within_budget_is_unchanged(self) -> None:
		"""A fitting diff comes back identical, without a marker."""
		diff = _multi_file_diff(2, 5)

		plan = truncate_diff(diff, len(diff))

		assert plan.text == diff
		assert plan.omitted_file_count == 0
		assert not plan.was_truncated
		assert plan.as_tuple() == (diff, 0)

	def test_ten_thousand_chars_into_three_thousand(self) -> None:
		"""Output stays within budget plus marker and keeps the first header."""
		diff = _multi_file_diff(5, 40)
		diff = diff[:10_000] if len(diff) > 10_000 else diff
		assert len(diff) >= 9_000

		plan = truncate_diff(diff, 3_000)

		assert plan.was_truncated
		assert len(plan.text) <= 3_000 + len(plan.marker)
		assert plan.text.startswith("diff --git a/src/module_0.py b/src/module_0.py\n")
		assert plan.text.endswith(plan.marker)

	def test_headers_are_kept_before_bodies(self) -> None:
		"""Every header that fits is kept even when bodies are dropped."""
		diff = _multi_file_diff(4, 60)
		headers_only = sum(len(segment.header) for segment in parse_diff_segments(diff))

		plan = truncate_diff(diff, headers_only + 50)

		for index in range(4):
			assert f"diff --git a/src/module_{index}.py b/src/module_{index}.py\n" in plan.text
		assert plan.omitted_file_count == 3
		assert "3 of 4 file(s) omitted" in plan.marker

	def test_whole_files_are_kept_in_order(self) -> None:
		"""Bodies are filled in order and the first file that does not fit is cut."""
		first, second, third = (_file_diff(f"f{index}.py", 20) for index in range(3))
		diff = first + second + third
		budget = len(first) + len(second) // 2 + 2 * len("diff --git a/f0.py b/f0.py\n")

		plan = truncate_diff(diff, budget)

		assert plan.text.startswith(first)
		assert plan.truncated_file == "f1.py"
		assert "diff --git a/f2.py b/f2.py\n" in plan.text
		assert plan.omitted_file_count == 1
		assert len(plan.text) <= budget + len(plan.marker)

	def test_file_deleted_entirely_counts_as_omitted(self) -> None:
		"""Files whose headers do not fit are counted as omitted."""
		diff = _multi_file_diff(6, 30)
		first_header = parse_diff_segments(diff)[0].header

		plan = truncate_diff(diff, len(first_header))

		assert plan.text.startswith(first_header)
		assert plan.omitted_file_count == 6
		assert "6 of 6" in plan.marker

	def test_tiny_budget(self) -> None:
		"""A budget smaller than any header keeps only the marker."""
		diff = _multi_file_diff(2, 10)

		plan = truncate_diff(diff, 5)

		assert plan.text == plan.marker
		assert plan.omitted_file_count == 2

	def test_unstructured_text_is_cut_at_a_line(self) -> None:
		"""Input without file headers is cut near the budget on a line boundary."""
		text = "".join(f"line {index:04d}\n" for index in range(500))

		plan = truncate_diff(text, 1_000)

		kept = plan.text[: -len(plan.marker)]
		assert len(kept) <= 1_000
		assert kept.endswith("\n")
		assert text.startswith(kept)
		assert plan.was_truncated
		assert plan.marker == "\n... (diff truncated to fit the context window) ...\n"
		assert "omitted" not in plan.marker


@pytest.mark.unit
class TestCutBody:
	"""Cutting a single file body."""

	def test_prefers_hunk_boundary_past_halfway(self) -> None:
		"""A hunk boundary in the second half of the limit is used."""
		body = "@@ -1 +1 @@\n" + "+a\n" * 40 + "@@ -50 +50 @@\n" + "+b\n" * 40

		cut = cut_body(body, 140)

		assert cut.endswith("+a\n")
		assert "@@ -50" not in cut

	def test_falls_back_to_line_boundary(self) -> None:
		"""Without a late hunk boundary the last full line is kept."""
		body = "@@ -1 +1 @@\n" + "".join(f"+row {index}\n" for index in range(50))

		cut = cut_body(body, 100)

		assert len(cut) <= 100
		assert cut.endswith("\n")

	def test_hard_cut_without_newlines(self) -> None:
		"""A single long line is cut exactly at the limit."""
		assert cut_body("x" * 500, 120) == "x" * 120

	def test_short_body_is_untouched(self) -> None:
		"""A body within the limit is returned as is."""
		assert cut_body("+a\n", 10) == "+a\n"
