"""LLM request pipeline: prompts, transport, retries and response mapping."""

from .client import ChatCompletionClient, CommitMessageResult
from .errors import (
	Ambiguous,
	ApiRequestFailed,
	AuthenticationFailed,
	ContextLengthExceeded,
	Fatal,
	GenerationError,
	NotFound,
	RateLimited,
	TransientTransport,
)
from .retry import RetryPolicy
from .transport import HttpTransport, PreparedRequest

__all__ = [
	"Ambiguous",
	"ApiRequestFailed",
	"AuthenticationFailed",
	"ChatCompletionClient",
	"CommitMessageResult",
	"ContextLengthExceeded",
	"Fatal",
	"GenerationError",
	"HttpTransport",
	"NotFound",
	"PreparedRequest",
	"RateLimited",
	"RetryPolicy",
	"TransientTransport",
]
