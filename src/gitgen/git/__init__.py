"""Git diff collection and truncation."""

from .diff_truncation import DiffFileSegment, TruncationPlan, parse_diff_segments, truncate_diff
from .repository import GitError, RepositoryReader, run_git_command

__all__ = [
	"DiffFileSegment",
	"GitError",
	"RepositoryReader",
	"TruncationPlan",
	"parse_diff_segments",
	"run_git_command",
	"truncate_diff",
]
