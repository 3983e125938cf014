"""
Resolution of user-supplied model identifiers.

Matching is layered and stops at the first layer that produces a result:

1. exact ``id``
2. case-insensitive ``name``
3. case-insensitive alias, with an optional leading '@' on either side
4. unique case-insensitive prefix of a name or alias, only when partial
   matching is enabled and the identifier is long enough

A failed lookup is reported as such. It never falls back to the default
model; that is the caller's decision, and only when no identifier was given.

"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from gitgen.config.config_schema import normalize_alias
from gitgen.llm.errors import Ambiguous, NotFound

if TYPE_CHECKING:
	from gitgen.config import ModelConfig, Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Found:
	"""The identifier resolved to exactly one model."""

	model: ModelConfig
	layer: str


Resolution = Found | Ambiguous | NotFound


def partial_matches(models: tuple[ModelConfig, ...], identifier: str) -> tuple[ModelConfig, ...]:
	"""Return every model whose name or an alias starts with ``identifier`` (case-insensitive, '@'-tolerant)."""
	prefix = normalize_alias(identifier).lower()
	if not prefix:
		return ()
	matches = []
	for model in models:
		if model.name.lower().startswith(prefix) or any(
			normalize_alias(alias).lower().startswith(prefix) for alias in model.aliases
		):
			matches.append(model)
	return tuple(matches)


class ModelResolver:
	"""Resolves identifiers against one settings snapshot."""

	def __init__(self, settings: Settings) -> None:
		"""
		Initialize the resolver.

		Args:
		    settings: Snapshot whose models and partial-match toggles are used

		"""
		self.settings = settings

	@property
	def partial_matching_enabled(self) -> bool:
		return self.settings.settings.enable_partial_alias_matching

	@property
	def minimum_partial_length(self) -> int:
		return self.settings.settings.minimum_alias_match_length

	def allows_partial(self, identifier: str) -> bool:
		"""Whether prefix matching may be attempted for ``identifier``."""
		return self.partial_matching_enabled and len(identifier) >= self.minimum_partial_length

	def resolve(self, identifier: str) -> Resolution:
		"""
		Resolve ``identifier`` to a model.

		Returns:
		    Found with the matching model, Ambiguous with every prefix candidate,
		    or NotFound

		"""
		identifier = identifier.strip()
		models = self.settings.models
		if not identifier or not models:
			return NotFound(identifier)

		for model in models:
			if model.id == identifier:
				logger.debug("Resolved '%s' by id to '%s'", identifier, model.name)
				return Found(model, "id")

		lowered = identifier.lower()
		for model in models:
			if model.name.lower() == lowered:
				logger.debug("Resolved '%s' by name to '%s'", identifier, model.name)
				return Found(model, "name")

		wanted = normalize_alias(identifier).lower()
		if wanted:
			for model in models:
				if any(normalize_alias(alias).lower() == wanted for alias in model.aliases):
					logger.debug("Resolved '%s' by alias to '%s'", identifier, model.name)
					return Found(model, "alias")

		if not self.allows_partial(identifier):
			logger.debug(
				"Partial matching not attempted (enabled=%s, length=%d, minimum=%d)",
				self.partial_matching_enabled,
				len(identifier),
				self.minimum_partial_length,
			)
			return NotFound(identifier)

		candidates = partial_matches(models, identifier)
		logger.debug("Partial match for '%s': %d candidate(s)", identifier, len(candidates))
		if len(candidates) == 1:
			return Found(candidates[0], "partial")
		if candidates:
			return Ambiguous(identifier, candidates)
		return NotFound(identifier)

	def suggestions(self, identifier: str) -> tuple[ModelConfig, ...]:
		"""
		Models worth listing after a failed lookup.

		Prefix candidates when partial matching applies and finds any,
		otherwise every model sorted by name.

		"""
		if self.allows_partial(identifier.strip()):
			candidates = partial_matches(self.settings.models, identifier.strip())
			if candidates:
				return tuple(sorted(candidates, key=lambda model: model.name.lower()))
		return tuple(sorted(self.settings.models, key=lambda model: model.name.lower()))
