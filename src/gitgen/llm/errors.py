"""
Failure variants for model resolution and generation.

Failures are plain values rather than exceptions: the client and resolver
return them, and the orchestrator matches on them exhaustively.

"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
	from gitgen.config import ModelConfig


@dataclass(frozen=True)
class NotFound:
	"""No model matched the identifier."""

	identifier: str

	@property
	def message(self) -> str:
		return f"Model or alias '{self.identifier}' not found"


@dataclass(frozen=True)
class Ambiguous:
	"""More than one model matched a partial identifier."""

	identifier: str
	candidates: tuple[ModelConfig, ...]

	@property
	def message(self) -> str:
		names = ", ".join(model.name for model in self.candidates)
		return f"'{self.identifier}' matches {len(self.candidates)} models: {names}"


@dataclass(frozen=True)
class AuthenticationFailed:
	"""The endpoint rejected the credentials, or none were configured."""

	detail: str = ""
	status_code: int | None = None

	@property
	def message(self) -> str:
		return f"Authentication failed: {self.detail}" if self.detail else "Authentication failed"


@dataclass(frozen=True)
class RateLimited:
	"""Every attempt was answered with HTTP 429."""

	attempts: int
	retry_after: float | None = None
	detail: str = ""

	@property
	def message(self) -> str:
		return f"Rate limited by the API after {self.attempts} attempt(s)"


@dataclass(frozen=True)
class TransientTransport:
	"""Every attempt failed with a retryable status or transport error."""

	attempts: int
	detail: str
	status_code: int | None = None

	@property
	def message(self) -> str:
		return f"Request failed after {self.attempts} attempt(s): {self.detail}"


@dataclass(frozen=True)
class ContextLengthExceeded:
	"""The request did not fit the model's context window."""

	max_context: int | None = None
	requested_tokens: int | None = None
	prompt_tokens: int | None = None
	completion_tokens: int | None = None
	api_message: str = ""

	@property
	def message(self) -> str:
		if self.max_context and self.requested_tokens:
			return (
				f"This model's maximum context length is {self.max_context:,} tokens, "
				f"but the request used {self.requested_tokens:,}"
			)
		return "The request exceeded the model's maximum context length"

	@classmethod
	def from_api_message(cls, api_message: str) -> ContextLengthExceeded:
		"""
		Parse token figures out of a provider's error text.

		Understands the OpenAI wording ("maximum context length is N tokens ...
		you requested M tokens (P in the messages, C in the completion)") and
		the xAI wording ("maximum prompt length is N ... request contains M tokens").

		"""
		max_context = _first_int(api_message, r"maximum context length is (\d+) tokens", r"maximum prompt length is (\d+)")
		requested = _first_int(api_message, r"requested (\d+) tokens", r"request contains (\d+) tokens")
		prompt_tokens = completion_tokens = None
		breakdown = re.search(r"\((\d+) in the messages, (\d+) in the completion\)", api_message)
		if breakdown:
			prompt_tokens, completion_tokens = int(breakdown.group(1)), int(breakdown.group(2))
		return cls(
			max_context=max_context,
			requested_tokens=requested,
			prompt_tokens=prompt_tokens,
			completion_tokens=completion_tokens,
			api_message=api_message,
		)


@dataclass(frozen=True)
class ApiRequestFailed:
	"""A non-retryable error response that is neither auth nor context related."""

	status_code: int
	body: str = ""

	@property
	def message(self) -> str:
		body = self.body if len(self.body) <= 200 else self.body[:200] + "..."
		return f"API request failed with status {self.status_code}: {body}"


@dataclass(frozen=True)
class Fatal:
	"""Anything unexpected."""

	cause: BaseException | None = None
	detail: str = field(default="")

	@property
	def message(self) -> str:
		if self.detail:
			return self.detail
		return f"An unexpected error occurred: {self.cause}" if self.cause else "An unexpected error occurred"


ResolutionError = NotFound | Ambiguous
GenerationError = AuthenticationFailed | RateLimited | TransientTransport | ContextLengthExceeded | ApiRequestFailed
TransportFailure = RateLimited | TransientTransport

CONTEXT_LENGTH_MARKERS = (
	"context_length_exceeded",
	"maximum context length",
	"maximum prompt length",
	"context window",
	"too many tokens",
)


def looks_like_context_overflow(body: str) -> bool:
	"""Return True if an error body describes a context-length overflow."""
	lowered = body.lower()
	return any(marker in lowered for marker in CONTEXT_LENGTH_MARKERS)


def _first_int(text: str, *patterns: str) -> int | None:
	for pattern in patterns:
		match = re.search(pattern, text)
		if match:
			return int(match.group(1))
	return None
