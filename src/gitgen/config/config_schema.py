"""Pydantic schemas for gitgen settings."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from gitgen.constants import (
	DEFAULT_MAX_OUTPUT_TOKENS,
	DEFAULT_MINIMUM_ALIAS_MATCH_LENGTH,
	DEFAULT_PROVIDER_TYPE,
	DEFAULT_TEMPERATURE,
	MAX_OUTPUT_TOKENS,
	MAX_TEMPERATURE,
	MIN_OUTPUT_TOKENS,
	MIN_TEMPERATURE,
)


def _utcnow() -> datetime:
	return datetime.now(tz=UTC)


def normalize_alias(alias: str) -> str:
	"""Strip whitespace and any leading '@' from an alias or identifier."""
	return alias.strip().lstrip("@")


class PricingInfo(BaseModel):
	"""Per-million-token pricing for a model."""

	model_config = ConfigDict(frozen=True)

	input_per_1m: float = Field(default=0.0, ge=0)
	output_per_1m: float = Field(default=0.0, ge=0)
	currency_code: str = Field(default="USD", min_length=3, max_length=3)
	updated_at: datetime = Field(default_factory=_utcnow)


class ModelConfig(BaseModel):
	"""
	A named backend configuration.

	Name and alias uniqueness is not checked here; it spans the whole model
	collection and is enforced by the settings store on every save.

	"""

	model_config = ConfigDict(frozen=True, protected_namespaces=())

	id: str = Field(default_factory=lambda: str(uuid.uuid4()))
	name: str = Field(min_length=1, max_length=100)
	aliases: tuple[str, ...] = ()
	type: str = DEFAULT_PROVIDER_TYPE
	provider: str = ""
	url: str
	model_id: str = Field(min_length=1)
	api_key: str = ""
	requires_auth: bool = True
	use_legacy_max_tokens: bool = False
	temperature: float = Field(default=DEFAULT_TEMPERATURE, ge=MIN_TEMPERATURE, le=MAX_TEMPERATURE)
	max_output_tokens: int = Field(default=DEFAULT_MAX_OUTPUT_TOKENS, ge=MIN_OUTPUT_TOKENS, le=MAX_OUTPUT_TOKENS)
	context_length: int | None = Field(default=None, gt=0)
	pricing: PricingInfo | None = None
	system_prompt: str | None = None
	note: str | None = None
	created_at: datetime = Field(default_factory=_utcnow)
	last_used: datetime = Field(default_factory=_utcnow)

	@field_validator("name")
	@classmethod
	def _strip_name(cls, value: str) -> str:
		value = value.strip()
		if not value:
			msg = "Model name cannot be empty"
			raise ValueError(msg)
		if value.startswith("@"):
			msg = "Model name cannot start with '@'"
			raise ValueError(msg)
		return value

	@field_validator("aliases", mode="before")
	@classmethod
	def _normalize_aliases(cls, value: object) -> tuple[str, ...]:
		if value is None:
			return ()
		if isinstance(value, str):
			value = [value]
		normalized: list[str] = []
		seen: set[str] = set()
		for alias in value:  # type: ignore[union-attr]
			cleaned = normalize_alias(str(alias))
			if not cleaned:
				msg = "Alias cannot be empty"
				raise ValueError(msg)
			if cleaned.lower() in seen:
				continue
			seen.add(cleaned.lower())
			normalized.append(cleaned)
		return tuple(normalized)

	@field_validator("url")
	@classmethod
	def _validate_url(cls, value: str) -> str:
		value = value.strip()
		if not value.startswith(("http://", "https://")):
			msg = f"URL must start with http:// or https:// (got '{value}')"
			raise ValueError(msg)
		return value

	def display_aliases(self) -> str:
		"""Return the aliases formatted for display, e.g. '@free, @g4'."""
		return ", ".join(f"@{alias}" for alias in sorted(self.aliases, key=str.lower))

	def masked_api_key(self) -> str:
		"""Return the API key with all but its first few characters hidden."""
		if not self.api_key:
			return "(none)"
		visible = self.api_key[:8] if len(self.api_key) > 12 else self.api_key[:3]
		return f"{visible}{'*' * 8}"


class AppSettings(BaseModel):
	"""Application-level toggles."""

	model_config = ConfigDict(frozen=True)

	show_token_usage: bool = True
	copy_to_clipboard: bool = True
	enable_partial_alias_matching: bool = True
	minimum_alias_match_length: int = Field(default=DEFAULT_MINIMUM_ALIAS_MATCH_LENGTH, ge=1)
	require_confirmation: bool = False
	record_usage: bool = True


class Settings(BaseModel):
	"""
	An immutable snapshot of everything gitgen persists.

	``default_model_id`` is a weak reference: it may be empty or point at a
	model that no longer exists, and is validated at resolution time.

	"""

	model_config = ConfigDict(frozen=True)

	version: str = "2.0"
	models: tuple[ModelConfig, ...] = ()
	default_model_id: str | None = None
	settings: AppSettings = Field(default_factory=AppSettings)

	def find_by_id(self, model_id: str) -> ModelConfig | None:
		"""Return the model with this exact id, if any."""
		return next((model for model in self.models if model.id == model_id), None)

	@property
	def default_model(self) -> ModelConfig | None:
		"""The model referenced by ``default_model_id``, or None if missing or dangling."""
		if not self.default_model_id:
			return None
		return self.find_by_id(self.default_model_id)
