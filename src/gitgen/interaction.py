"""
User interaction port used by the healer and the orchestrator.

Prompts are awaited on the running event loop, so they can be asked from
inside an async command.

"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Protocol, runtime_checkable

import questionary

if TYPE_CHECKING:
	from collections.abc import Sequence

	from gitgen.config import ModelConfig

logger = logging.getLogger(__name__)


@runtime_checkable
class Interaction(Protocol):
	"""Questions the pipeline may need to ask the user."""

	async def confirm(self, message: str, default: bool = False) -> bool:
		"""Ask a yes/no question."""
		...

	async def select(self, message: str, candidates: Sequence[ModelConfig]) -> ModelConfig | None:
		"""Ask the user to pick one model; None means no choice was made."""
		...


def describe_model(model: ModelConfig) -> str:
	"""One-line description used in selection lists."""
	text = model.name
	if model.aliases:
		text += f" ({model.display_aliases()})"
	if model.note:
		text += f" - {model.note}"
	return text


class ConsoleInteraction:
	"""Interaction backed by questionary prompts on the terminal."""

	def __init__(self, interactive: bool | None = None) -> None:
		"""
		Initialize the console interaction.

		Args:
		    interactive: Force prompting on or off; defaults to whether stdin is a TTY

		"""
		self.interactive = sys.stdin.isatty() if interactive is None else interactive

	async def confirm(self, message: str, default: bool = False) -> bool:
		if not self.interactive:
			logger.debug("Not interactive, answering '%s' with the default (%s)", message, default)
			return default
		answer = await questionary.confirm(message, default=default).ask_async()
		return bool(answer)

	async def select(self, message: str, candidates: Sequence[ModelConfig]) -> ModelConfig | None:
		if not self.interactive or not candidates:
			logger.debug("Cannot ask '%s' without an interactive terminal", message)
			return None
		choices = [questionary.Choice(title=describe_model(model), value=model.id) for model in candidates]
		selected_id = await questionary.select(message, choices=choices).ask_async()
		if selected_id is None:
			return None
		return next((model for model in candidates if model.id == selected_id), None)
