"""
Settings store for gitgen.

This module persists the model collection and application toggles as a
single YAML document, validates the collection-wide uniqueness rules on
every save, and writes atomically so an interrupted run can never leave a
half-written file behind.

"""

from __future__ import annotations

import logging
import os
import tempfile
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import platformdirs
import yaml
from pydantic import ValidationError

from gitgen.config.config_schema import AppSettings, ModelConfig, Settings, normalize_alias

logger = logging.getLogger(__name__)

APP_NAME = "gitgen"
SETTINGS_FILE_NAME = "settings.yml"
SETTINGS_FILE_ENV = "GITGEN_SETTINGS_FILE"
SETTINGS_ENV_PREFIX = "GITGEN_SETTINGS_"


class ConfigError(Exception):
	"""Exception raised for configuration errors."""


class ConfigParsingError(ConfigError):
	"""Exception raised when the settings file cannot be read or parsed."""


class ModelValidationError(ConfigError):
	"""Exception raised when a change would break name or alias uniqueness."""


class ModelNotFoundError(ConfigError):
	"""Exception raised when an identifier does not match any stored model."""


def default_settings_path() -> Path:
	"""
	Resolve the settings file location.

	``$GITGEN_SETTINGS_FILE`` wins; otherwise the platform's user config
	directory is used.

	"""
	override = os.environ.get(SETTINGS_FILE_ENV)
	if override:
		return Path(override).expanduser()
	return Path(platformdirs.user_config_dir(APP_NAME, APP_NAME)) / SETTINGS_FILE_NAME


def find_exact_model(models: tuple[ModelConfig, ...] | list[ModelConfig], identifier: str) -> ModelConfig | None:
	"""
	Look a model up by id, then name, then alias.

	Name and alias comparisons are case-insensitive and a leading '@' is
	ignored on both sides of an alias comparison.

	"""
	if not identifier:
		return None

	for model in models:
		if model.id == identifier:
			return model

	lowered = identifier.strip().lower()
	for model in models:
		if model.name.lower() == lowered:
			return model

	wanted = normalize_alias(identifier).lower()
	if not wanted:
		return None
	for model in models:
		if any(normalize_alias(alias).lower() == wanted for alias in model.aliases):
			return model
	return None


def validate_model_collection(models: tuple[ModelConfig, ...] | list[ModelConfig]) -> None:
	"""
	Check the collection-wide uniqueness rules.

	Names are unique case-insensitively, every alias is unique across all
	models, and no alias equals any model name.

	Raises:
	    ModelValidationError: On the first violation found

	"""
	names: dict[str, str] = {}
	ids: set[str] = set()
	for model in models:
		if model.id in ids:
			msg = f"Duplicate model id '{model.id}'"
			raise ModelValidationError(msg)
		ids.add(model.id)
		key = model.name.lower()
		if key in names:
			msg = f"A model named '{model.name}' already exists"
			raise ModelValidationError(msg)
		names[key] = model.name

	aliases: dict[str, str] = {}
	for model in models:
		for alias in model.aliases:
			key = normalize_alias(alias).lower()
			if key in names:
				msg = f"Alias '@{alias}' on model '{model.name}' conflicts with the model name '{names[key]}'"
				raise ModelValidationError(msg)
			if key in aliases:
				msg = f"Alias '@{alias}' is already used by model '{aliases[key]}'"
				raise ModelValidationError(msg)
			aliases[key] = model.name


def _coerce_env_value(value: str) -> bool | int | str:
	lowered = value.lower()
	if lowered in ("true", "yes", "1", "on"):
		return True
	if lowered in ("false", "no", "0", "off"):
		return False
	try:
		return int(value)
	except ValueError:
		return value


class SettingsStore:
	"""
	Loads and saves gitgen settings.

	Every read returns a fresh immutable ``Settings`` snapshot and every
	mutation returns the snapshot it persisted; nothing is cached between
	calls, so a load always reflects the most recent save.

	"""

	def __init__(self, path: Path | None = None) -> None:
		"""
		Initialize the store.

		Args:
		    path: Settings file to use (defaults to ``default_settings_path()``)

		"""
		self.path = path or default_settings_path()

	# --- Load / save ---

	def _read_file(self) -> Settings:
		if not self.path.exists():
			logger.debug("Settings file %s does not exist, using empty settings", self.path)
			return Settings()

		try:
			with self.path.open(encoding="utf-8") as f:
				content = yaml.safe_load(f)
		except (OSError, yaml.YAMLError) as e:
			msg = f"Error loading settings from {self.path}: {e}"
			logger.exception(msg)
			raise ConfigParsingError(msg) from e

		if content is None:
			return Settings()
		if not isinstance(content, dict):
			msg = f"Settings file {self.path} does not contain a valid YAML mapping"
			raise ConfigParsingError(msg)

		try:
			return Settings.model_validate(content)
		except ValidationError as e:
			msg = f"Error parsing settings file {self.path}: {e}"
			logger.exception(msg)
			raise ConfigParsingError(msg) from e

	def _apply_env_overrides(self, settings: Settings) -> Settings:
		"""Apply GITGEN_SETTINGS_<FIELD> overrides to the app toggles, in memory only."""
		overrides: dict[str, Any] = {}
		for field_name in AppSettings.model_fields:
			raw = os.environ.get(f"{SETTINGS_ENV_PREFIX}{field_name.upper()}")
			if raw is not None:
				overrides[field_name] = _coerce_env_value(raw)

		if not overrides:
			return settings

		logger.debug("Applying settings overrides from environment: %s", sorted(overrides))
		merged = {**settings.settings.model_dump(), **overrides}
		try:
			app_settings = AppSettings.model_validate(merged)
		except ValidationError as e:
			msg = f"Invalid {SETTINGS_ENV_PREFIX}* environment override: {e}"
			raise ConfigError(msg) from e
		return settings.model_copy(update={"settings": app_settings})

	def load_settings(self) -> Settings:
		"""
		Load the current settings snapshot, including environment overrides.

		Raises:
		    ConfigParsingError: If the settings file exists but cannot be parsed

		"""
		return self._apply_env_overrides(self._read_file())

	def save_settings(self, settings: Settings) -> Settings:
		"""
		Validate and atomically persist a settings snapshot.

		The document is written to a temporary file in the same directory and
		renamed over the target, so readers see either the old or the new file.

		Raises:
		    ModelValidationError: If the snapshot breaks name or alias uniqueness

		"""
		validate_model_collection(settings.models)

		self.path.parent.mkdir(parents=True, exist_ok=True)
		document = settings.model_dump(mode="json")

		fd, tmp_name = tempfile.mkstemp(prefix=".settings-", suffix=".tmp", dir=self.path.parent)
		tmp_path = Path(tmp_name)
		try:
			with os.fdopen(fd, "w", encoding="utf-8") as f:
				yaml.safe_dump(document, f, sort_keys=False, allow_unicode=True)
				f.flush()
				os.fsync(f.fileno())
			tmp_path.chmod(0o600)
			tmp_path.replace(self.path)
		except BaseException:
			tmp_path.unlink(missing_ok=True)
			raise

		logger.debug("Saved %d model(s) to %s", len(settings.models), self.path)
		return settings

	# --- Queries ---

	def list_models(self) -> tuple[ModelConfig, ...]:
		"""Return all stored models in insertion order."""
		return self.load_settings().models

	def get_model_by_id_or_name(self, identifier: str) -> ModelConfig | None:
		"""Return the model matching ``identifier`` by id, name or alias (exact layers only)."""
		return find_exact_model(self.load_settings().models, identifier)

	def _require_model(self, settings: Settings, identifier: str) -> ModelConfig:
		model = find_exact_model(settings.models, identifier)
		if model is None:
			msg = f"Model '{identifier}' not found"
			raise ModelNotFoundError(msg)
		return model

	# --- Mutations ---

	def add_model(self, model: ModelConfig) -> Settings:
		"""
		Add a model, promoting it to default if it is the first one.

		Raises:
		    ModelValidationError: If the name or an alias collides with an existing model

		"""
		settings = self._read_file()
		models = (*settings.models, model)
		validate_model_collection(models)

		default_model_id = settings.default_model_id
		if len(models) == 1:
			default_model_id = model.id
			logger.debug("Model '%s' is the first model, setting it as default", model.name)

		saved = self.save_settings(settings.model_copy(update={"models": models, "default_model_id": default_model_id}))
		logger.info("Added model '%s'", model.name)
		return saved

	def update_model(self, model: ModelConfig) -> Settings:
		"""
		Replace the stored model that has the same id.

		Raises:
		    ModelNotFoundError: If no model has this id
		    ModelValidationError: If the change breaks name or alias uniqueness

		"""
		settings = self._read_file()
		if settings.find_by_id(model.id) is None:
			msg = f"Model with ID '{model.id}' not found"
			raise ModelNotFoundError(msg)

		models = tuple(model if existing.id == model.id else existing for existing in settings.models)
		saved = self.save_settings(settings.model_copy(update={"models": models}))
		logger.debug("Updated model '%s'", model.name)
		return saved

	def delete_model(self, identifier: str) -> Settings:
		"""
		Delete a model by id, name or alias.

		If the deleted model was the default, the default pointer is cleared
		and left for the default-model healer to repair.

		"""
		settings = self._read_file()
		model = self._require_model(settings, identifier)

		models = tuple(existing for existing in settings.models if existing.id != model.id)
		default_model_id = None if settings.default_model_id == model.id else settings.default_model_id

		saved = self.save_settings(settings.model_copy(update={"models": models, "default_model_id": default_model_id}))
		logger.info("Deleted model '%s'", model.name)
		return saved

	def set_default_model(self, identifier: str) -> Settings:
		"""Point the default model at the model matching ``identifier``."""
		settings = self._read_file()
		model = self._require_model(settings, identifier)
		saved = self.save_settings(settings.model_copy(update={"default_model_id": model.id}))
		logger.info("Default model set to '%s'", model.name)
		return saved

	def add_alias(self, identifier: str, alias: str) -> Settings:
		"""
		Add an alias to a model.

		Raises:
		    ModelValidationError: If the alias is empty or already used anywhere

		"""
		normalized = normalize_alias(alias)
		if not normalized:
			msg = "Alias cannot be empty or whitespace"
			raise ModelValidationError(msg)

		settings = self._read_file()
		model = self._require_model(settings, identifier)
		if any(existing.lower() == normalized.lower() for existing in model.aliases):
			logger.warning("Alias '@%s' already exists for model '%s'", normalized, model.name)
			return settings

		updated = ModelConfig.model_validate({**model.model_dump(), "aliases": [*model.aliases, normalized]})
		return self.update_model(updated)

	def remove_alias(self, identifier: str, alias: str) -> Settings:
		"""Remove an alias from a model; a missing alias is reported and ignored."""
		normalized = normalize_alias(alias).lower()
		settings = self._read_file()
		model = self._require_model(settings, identifier)

		remaining = [existing for existing in model.aliases if existing.lower() != normalized]
		if len(remaining) == len(model.aliases):
			logger.warning("Alias '@%s' not found for model '%s'", normalized, model.name)
			return settings

		updated = ModelConfig.model_validate({**model.model_dump(), "aliases": remaining})
		return self.update_model(updated)

	def touch_last_used(self, model_id: str) -> Settings:
		"""Record that a model was just used."""
		settings = self._read_file()
		model = settings.find_by_id(model_id)
		if model is None:
			msg = f"Model with ID '{model_id}' not found"
			raise ModelNotFoundError(msg)
		return self.update_model(model.model_copy(update={"last_used": datetime.now(tz=UTC)}))

	def update_app_settings(self, **changes: Any) -> Settings:  # noqa: ANN401
		"""Persist changes to the application toggles."""
		settings = self._read_file()
		app_settings = AppSettings.model_validate({**settings.settings.model_dump(), **changes})
		return self.save_settings(settings.model_copy(update={"settings": app_settings}))
