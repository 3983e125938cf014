"""Shared constants for gitgen."""

from __future__ import annotations

# Token estimation
CHARS_PER_TOKEN = 4
# Truncation budgets use a tighter ratio so the retried request has headroom
TRUNCATION_CHARS_PER_TOKEN = 3
TRUNCATION_SAFETY_RATIO = 0.9
BASE_SYSTEM_PROMPT_CHARS = 1600

# Used when neither the API error nor the model config reports a context window
DEFAULT_CONTEXT_LENGTH = 8192

# Retry policy
MAX_ATTEMPTS = 3
RATE_LIMIT_BACKOFF_FACTOR = 2.0
RETRYABLE_STATUS_CODES = frozenset({408, 429})
HTTP_TIMEOUT_SECONDS = 120.0

# Model defaults
DEFAULT_PROVIDER_TYPE = "openai-compatible"
DEFAULT_OPENAI_URL = "https://api.openai.com/v1/chat/completions"
DEFAULT_TEMPERATURE = 0.2
DEFAULT_MAX_OUTPUT_TOKENS = 5000
MIN_TEMPERATURE = 0.0
MAX_TEMPERATURE = 2.0
MIN_OUTPUT_TOKENS = 100
MAX_OUTPUT_TOKENS = 200_000
COMMIT_MESSAGE_MAX_LENGTH = 300

# Partial matching
DEFAULT_MINIMUM_ALIAS_MATCH_LENGTH = 2

# API markers
AZURE_URL_PATTERN = "openai.azure.com"
AUTH_ERROR_MARKERS = ("invalid_api_key", "Incorrect API key provided", "Invalid API key")

# Messages
FALLBACK_COMMIT_MESSAGE = "Automated commit of code changes."
NO_GIT_REPOSITORY = "Current directory is not a Git repository."
NO_UNCOMMITTED_CHANGES = "No uncommitted changes detected."
AUTHENTICATION_FAILED = "Authentication failed. The API key was rejected or is missing."
AUTHENTICATION_GUIDANCE = "To fix this, run: gitgen models update <model> --api-key <key>"
CONTEXT_LENGTH_EXCEEDED = "The diff is too large for this model's context window."
OUTPUT_RESERVATION_GUIDANCE = (
	"The diff already fits the truncation budget, so the overflow comes from the reserved output tokens. "
	"Lower them with: gitgen models update <model> --max-output-tokens <n>"
)
GENERATION_CANCELLED = "Generation cancelled."
