"""Settings schema and persistence for gitgen."""

from .config_schema import AppSettings, ModelConfig, PricingInfo, Settings, normalize_alias
from .settings_store import (
	ConfigError,
	ConfigParsingError,
	ModelNotFoundError,
	ModelValidationError,
	SettingsStore,
	default_settings_path,
	find_exact_model,
	validate_model_collection,
)

__all__ = [
	"AppSettings",
	"ConfigError",
	"ConfigParsingError",
	"ModelConfig",
	"ModelNotFoundError",
	"ModelValidationError",
	"PricingInfo",
	"Settings",
	"SettingsStore",
	"default_settings_path",
	"find_exact_model",
	"normalize_alias",
	"validate_model_collection",
]
