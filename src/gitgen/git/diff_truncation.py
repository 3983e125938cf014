"""
Structure-aware truncation of git diffs.

A diff that does not fit a character budget is cut file by file: every
file header that fits is kept so the result still names the changed files,
then bodies are filled in original order until the first one that does not
fit, which is cut at a hunk or line boundary. A trailing marker states that
truncation happened and how many files lost all of their content.

"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

FILE_HEADER_PATTERN = re.compile(r"^diff --git a/.+ b/.+$", re.MULTILINE)
HUNK_BOUNDARY = "\n@@"
TRUNCATION_MARKER = "\n... (diff truncated to fit the context window: {omitted} of {total} file(s) omitted) ...\n"
PLAIN_TRUNCATION_MARKER = "\n... (diff truncated to fit the context window) ...\n"


@dataclass(frozen=True)
class DiffFileSegment:
	"""One file of a diff: its ``diff --git`` header line and everything after it."""

	header: str
	body: str

	@property
	def path(self) -> str:
		"""The post-image path named by the header."""
		match = re.search(r" b/(.+)$", self.header.rstrip("\n"))
		return match.group(1) if match else self.header.strip()

	def __len__(self) -> int:
		return len(self.header) + len(self.body)


@dataclass
class TruncationPlan:
	"""The outcome of fitting a diff into a character budget."""

	original: str
	budget_chars: int
	segments: list[DiffFileSegment] = field(default_factory=list)
	text: str = ""
	marker: str = ""
	omitted_file_count: int = 0
	truncated_file: str | None = None

	@property
	def was_truncated(self) -> bool:
		"""Whether any content was dropped."""
		return bool(self.marker)

	def as_tuple(self) -> tuple[str, int]:
		"""Return ``(text, omitted_file_count)``."""
		return self.text, self.omitted_file_count


def parse_diff_segments(diff: str) -> list[DiffFileSegment]:
	"""
	Split a diff into per-file segments.

	Any text before the first file header is kept with the first header so
	nothing is lost. A diff with no file headers yields an empty list.

	"""
	starts = [match.start() for match in FILE_HEADER_PATTERN.finditer(diff)]
	if not starts:
		return []

	preamble = diff[: starts[0]]
	segments: list[DiffFileSegment] = []
	for index, start in enumerate(starts):
		end = starts[index + 1] if index + 1 < len(starts) else len(diff)
		chunk = diff[start:end]
		newline = chunk.find("\n")
		header, body = (chunk, "") if newline == -1 else (chunk[: newline + 1], chunk[newline + 1 :])
		if index == 0 and preamble:
			header = preamble + header
		segments.append(DiffFileSegment(header=header, body=body))
	return segments


def cut_body(body: str, limit: int) -> str:
	"""
	Cut a file body to at most ``limit`` characters.

	Prefers the last hunk boundary before the limit when it lies past the
	halfway point, then the last line boundary, then a hard cut.

	"""
	if len(body) <= limit:
		return body
	if limit <= 0:
		return ""

	hunk_index = body.rfind(HUNK_BOUNDARY, 0, limit)
	if hunk_index > limit / 2:
		return body[: hunk_index + 1]

	newline_index = body.rfind("\n", 0, limit)
	if newline_index > 0:
		return body[: newline_index + 1]

	return body[:limit]


def _truncate_unstructured(plan: TruncationPlan) -> TruncationPlan:
	diff, budget = plan.original, max(plan.budget_chars, 0)
	cut = budget
	newline_index = diff.rfind("\n", 0, budget)
	if newline_index > budget / 2:
		cut = newline_index + 1
	plan.marker = PLAIN_TRUNCATION_MARKER
	plan.text = diff[:cut] + plan.marker
	return plan


def truncate_diff(diff: str, budget_chars: int) -> TruncationPlan:
	"""
	Fit ``diff`` into ``budget_chars`` characters, preserving whole files where possible.

	Args:
	    diff: The full diff text
	    budget_chars: Maximum number of diff characters to keep

	Returns:
	    A TruncationPlan whose ``text`` is at most ``budget_chars`` plus the
	    length of its ``marker``. A diff that already fits is returned
	    unchanged with no marker and zero omitted files.

	"""
	plan = TruncationPlan(original=diff, budget_chars=budget_chars)
	if len(diff) <= budget_chars:
		plan.text = diff
		return plan

	plan.segments = parse_diff_segments(diff)
	if not plan.segments:
		logger.debug("Diff has no file headers, falling back to a plain cut at %d chars", budget_chars)
		return _truncate_unstructured(plan)

	used = 0
	header_count = 0
	for segment in plan.segments:
		if used + len(segment.header) > budget_chars:
			break
		used += len(segment.header)
		header_count += 1

	kept_bodies: list[str] = [""] * header_count
	for index in range(header_count):
		remaining = budget_chars - used
		if remaining <= 0:
			break
		body = plan.segments[index].body
		if len(body) <= remaining:
			kept_bodies[index] = body
			used += len(body)
			continue
		kept_bodies[index] = cut_body(body, remaining)
		used += len(kept_bodies[index])
		plan.truncated_file = plan.segments[index].path
		break

	parts: list[str] = []
	omitted = 0
	for index, segment in enumerate(plan.segments):
		if index >= header_count:
			omitted += 1
			continue
		parts.append(segment.header)
		parts.append(kept_bodies[index])
		if segment.body and not kept_bodies[index]:
			omitted += 1

	plan.omitted_file_count = omitted
	plan.marker = TRUNCATION_MARKER.format(omitted=omitted, total=len(plan.segments))
	plan.text = "".join(parts) + plan.marker

	logger.debug(
		"Truncated diff from %d to %d chars (%d header(s) kept, %d file(s) omitted, partial file: %s)",
		len(diff),
		len(plan.text),
		header_count,
		omitted,
		plan.truncated_file,
	)
	return plan
