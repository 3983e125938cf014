"""Model identifier resolution and default-model healing."""

from .healer import DefaultHealer, DefaultState, HealOutcome, HealResult, inspect_default
from .resolver import Found, ModelResolver, Resolution, partial_matches

__all__ = [
	"DefaultHealer",
	"DefaultState",
	"Found",
	"HealOutcome",
	"HealResult",
	"ModelResolver",
	"Resolution",
	"inspect_default",
	"partial_matches",
]
