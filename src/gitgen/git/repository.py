"""Git repository access for gitgen."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)


class GitError(Exception):
	"""Custom exception for Git-related errors."""


def run_git_command(command: list[str], cwd: Path | None = None) -> str:
	"""
	Run a Git command and return its output.

	Args:
	    command: Git command to run
	    cwd: Working directory (optional)

	Returns:
	    Command output as string

	Raises:
	    GitError: If the command fails or git is not installed

	"""
	try:
		result = subprocess.run(  # noqa: S603
			command,
			cwd=cwd,
			capture_output=True,
			text=True,
			encoding="utf-8",
			errors="replace",
			check=True,
		)
	except FileNotFoundError as e:
		msg = "git executable not found on PATH"
		raise GitError(msg) from e
	except subprocess.CalledProcessError as e:
		error_msg = f"Git command failed: {' '.join(command)}\nError: {e.stderr}"
		logger.debug(error_msg)
		raise GitError(error_msg) from e
	else:
		return result.stdout


class RepositoryReader:
	"""Reads the uncommitted changes of a working tree."""

	def __init__(self, path: Path | None = None) -> None:
		"""
		Initialize the reader.

		Args:
		    path: Directory inside the repository (defaults to the current directory)

		"""
		self.path = path or Path.cwd()

	def is_repository(self) -> bool:
		"""Return True if ``path`` is inside a git work tree."""
		try:
			output = run_git_command(["git", "rev-parse", "--is-inside-work-tree"], self.path)
		except GitError:
			return False
		return output.strip() == "true"

	def _has_head(self) -> bool:
		try:
			run_git_command(["git", "rev-parse", "--verify", "--quiet", "HEAD"], self.path)
		except GitError:
			return False
		return True

	def get_diff(self) -> str:
		"""
		Return the diff of every uncommitted change, staged and unstaged.

		Untracked files are included as new-file diffs. An empty string means
		there is nothing to commit.

		Raises:
		    GitError: If a git command fails

		"""
		if self._has_head():
			tracked = run_git_command(["git", "diff", "HEAD", "--no-color", "--no-ext-diff"], self.path)
		else:
			# A fresh repository has no HEAD to diff against; staged files are all there is.
			tracked = run_git_command(["git", "diff", "--cached", "--no-color", "--no-ext-diff"], self.path)

		untracked_files = run_git_command(
			["git", "ls-files", "--others", "--exclude-standard"],
			self.path,
		).splitlines()

		parts = [tracked] if tracked else []
		for file_path in untracked_files:
			if not file_path:
				continue
			try:
				parts.append(self._diff_untracked(file_path))
			except GitError:
				logger.warning("Could not diff untracked file %s", file_path)

		diff = "".join(part if part.endswith("\n") else part + "\n" for part in parts if part)
		logger.debug("Collected diff of %d chars (%d untracked file(s))", len(diff), len(untracked_files))
		return diff

	def _diff_untracked(self, file_path: str) -> str:
		# `git diff --no-index` exits 1 when the files differ, which is always the case here
		try:
			return run_git_command(
				["git", "diff", "--no-color", "--no-index", "--", "/dev/null", file_path],
				self.path,
			)
		except GitError as e:
			cause = e.__cause__
			if isinstance(cause, subprocess.CalledProcessError) and cause.returncode == 1:
				return cause.stdout or ""
			raise
