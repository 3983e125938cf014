"""Append-only JSON Lines log of generation calls."""

from __future__ import annotations

import logging
import os
import uuid
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

import platformdirs
from pydantic import BaseModel, ConfigDict, Field

from gitgen.utils.cost import calculate_cost

if TYPE_CHECKING:
	from gitgen.config import ModelConfig
	from gitgen.llm import CommitMessageResult

logger = logging.getLogger(__name__)

USAGE_DIR_ENV = "GITGEN_USAGE_DIR"


def _session_id() -> str:
	return f"{int(datetime.now(tz=UTC).timestamp())}-{uuid.uuid4().hex[:8]}"


class UsageEntry(BaseModel):
	"""One line of the usage log."""

	model_config = ConfigDict(protected_namespaces=())

	timestamp: datetime = Field(default_factory=lambda: datetime.now(tz=UTC))
	session_id: str = ""
	model_name: str
	model_id: str
	provider: str = ""
	input_tokens: int | None = None
	output_tokens: int | None = None
	total_tokens: int | None = None
	estimated_cost: float | None = None
	currency: str | None = None
	duration: float = 0.0
	truncated: bool = False
	success: bool = True

	@classmethod
	def from_result(cls, model: ModelConfig, result: CommitMessageResult, duration: float = 0.0) -> UsageEntry:
		"""Build the entry for a successful generation."""
		cost = None
		if result.has_usage:
			cost = calculate_cost(model, result.input_tokens or 0, result.output_tokens or 0)
		return cls(
			model_name=model.name,
			model_id=model.model_id,
			provider=model.provider,
			input_tokens=result.input_tokens,
			output_tokens=result.output_tokens,
			total_tokens=result.total_tokens,
			estimated_cost=float(cost) if cost is not None else None,
			currency=model.pricing.currency_code if cost is not None and model.pricing else None,
			duration=round(duration, 3),
			truncated=result.truncated,
		)


def default_usage_dir() -> Path:
	"""Directory holding the monthly usage files."""
	override = os.environ.get(USAGE_DIR_ENV)
	if override:
		return Path(override).expanduser()
	return Path(platformdirs.user_data_dir("gitgen")) / "usage"


class UsageRecorder:
	"""Writes usage entries to ``usage-YYYY-MM.jsonl`` files."""

	def __init__(self, directory: Path | None = None) -> None:
		self.directory = directory or default_usage_dir()
		self.session_id = _session_id()

	def file_for(self, timestamp: datetime) -> Path:
		return self.directory / f"usage-{timestamp:%Y-%m}.jsonl"

	def record(self, entry: UsageEntry) -> Path | None:
		"""
		Append ``entry`` to the file for its month.

		Failures are logged, never raised.

		Returns:
		    The file written to, or None if writing failed

		"""
		if not entry.session_id:
			entry = entry.model_copy(update={"session_id": self.session_id})
		path = self.file_for(entry.timestamp)
		try:
			self.directory.mkdir(parents=True, exist_ok=True)
			with path.open("a", encoding="utf-8") as handle:
				handle.write(entry.model_dump_json() + "\n")
		except OSError:
			logger.warning("Could not record usage to %s", path, exc_info=True)
			return None
		logger.debug("Usage recorded to %s", path)
		return path
