"""Repair of a missing or dangling default-model reference."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
	from gitgen.config import ModelConfig, Settings, SettingsStore
	from gitgen.interaction import Interaction

logger = logging.getLogger(__name__)


class DefaultState(enum.Enum):
	"""Condition of the ``default_model_id`` reference."""

	VALID = "valid"
	MISSING = "missing"
	DANGLING = "dangling"


class HealOutcome(enum.Enum):
	"""Result of a healing attempt."""

	ALREADY_VALID = "already_valid"
	NOTHING_TO_HEAL = "nothing_to_heal"
	HEALED = "healed"
	FAILED = "failed"


@dataclass(frozen=True)
class HealResult:
	"""What healing did, and the snapshot it left behind."""

	outcome: HealOutcome
	settings: Settings
	model: ModelConfig | None = None
	reason: str = ""

	@property
	def succeeded(self) -> bool:
		return self.outcome is HealOutcome.HEALED


def inspect_default(settings: Settings) -> DefaultState:
	"""Classify the default reference of ``settings``."""
	if not settings.default_model_id:
		return DefaultState.MISSING
	if settings.find_by_id(settings.default_model_id) is None:
		return DefaultState.DANGLING
	return DefaultState.VALID


class DefaultHealer:
	"""
	Restores a valid default model.

	With exactly one stored model it is assigned without asking. With more,
	the user must pick one; without a pick nothing changes and healing fails.

	"""

	def __init__(self, store: SettingsStore, interaction: Interaction) -> None:
		"""
		Initialize the healer.

		Args:
		    store: Store the repaired default is saved to
		    interaction: Used to ask which model to promote when several exist

		"""
		self.store = store
		self.interaction = interaction

	async def heal(self, settings: Settings | None = None) -> HealResult:
		"""
		Heal the default reference if it is missing or dangling.

		Args:
		    settings: Snapshot to inspect; loaded from the store when omitted

		"""
		settings = settings or self.store.load_settings()

		if not settings.models:
			logger.debug("No models exist, nothing to heal")
			return HealResult(HealOutcome.NOTHING_TO_HEAL, settings, reason="No models are configured.")

		state = inspect_default(settings)
		if state is DefaultState.VALID:
			return HealResult(HealOutcome.ALREADY_VALID, settings, model=settings.default_model)

		if state is DefaultState.MISSING:
			reason = "There is currently no default model set."
		else:
			reason = f"The default model ID '{settings.default_model_id}' refers to a model that no longer exists."
		logger.warning(reason)

		if len(settings.models) == 1:
			chosen = settings.models[0]
			logger.info("Setting '%s' as the default model (only model available)", chosen.name)
		else:
			chosen = await self.interaction.select("Which model do you want to use as the default?", settings.models)
			if chosen is None:
				logger.error("No default model was selected; leaving the configuration unchanged")
				return HealResult(HealOutcome.FAILED, settings, reason=reason)

		healed = self.store.set_default_model(chosen.id)
		logger.info("Default model set to '%s'", chosen.name)
		return HealResult(HealOutcome.HEALED, healed, model=chosen, reason=reason)
