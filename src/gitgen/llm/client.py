"""Client for OpenAI-compatible chat-completion endpoints."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from gitgen.constants import AUTH_ERROR_MARKERS, AZURE_URL_PATTERN, FALLBACK_COMMIT_MESSAGE
from gitgen.utils.message_cleaning import clean_commit_message

from .errors import (
	ApiRequestFailed,
	AuthenticationFailed,
	ContextLengthExceeded,
	GenerationError,
	RateLimited,
	TransientTransport,
	looks_like_context_overflow,
)
from .prompts import build_messages
from .retry import RetryPolicy
from .transport import HttpTransport, PreparedRequest

if TYPE_CHECKING:
	import httpx

	from gitgen.config import ModelConfig

	from .prompts import MessageDict

logger = logging.getLogger(__name__)

CONTEXT_ERROR_STATUSES = frozenset({400, 413, 422})
AUTH_ERROR_STATUSES = frozenset({401, 403})


@dataclass(frozen=True)
class CommitMessageResult:
	"""A generated commit message with the usage the API reported."""

	message: str
	input_tokens: int | None = None
	output_tokens: int | None = None
	total_tokens: int | None = None
	truncated: bool = False

	@property
	def has_usage(self) -> bool:
		"""Whether the API reported both input and output token counts."""
		return self.input_tokens is not None and self.output_tokens is not None


def _error_text(body: str) -> str:
	"""Pull ``error.message`` out of a JSON error body, falling back to the raw body."""
	try:
		data = json.loads(body)
	except ValueError:
		return body
	if isinstance(data, dict):
		error = data.get("error")
		if isinstance(error, dict):
			parts = [str(error.get(key)) for key in ("code", "type", "message") if error.get(key)]
			if parts:
				return " ".join(parts)
		elif isinstance(error, str):
			return error
		if isinstance(data.get("message"), str):
			return data["message"]
	return body


class ChatCompletionClient:
	"""Generates commit messages through an OpenAI-compatible ``/chat/completions`` endpoint."""

	def __init__(self, transport: HttpTransport, retry_policy: RetryPolicy | None = None) -> None:
		"""
		Initialize the client.

		Args:
		    transport: Transport used for every attempt
		    retry_policy: Policy wrapping each call (defaults to three attempts)

		"""
		self.transport = transport
		self.retry_policy = retry_policy or RetryPolicy()

	def prepare_request(self, model: ModelConfig, messages: list[MessageDict]) -> PreparedRequest:
		"""Serialize the request for ``model``, including auth headers."""
		token_parameter = "max_tokens" if model.use_legacy_max_tokens else "max_completion_tokens"
		payload: dict[str, Any] = {
			"model": model.model_id,
			"messages": messages,
			"temperature": model.temperature,
			token_parameter: model.max_output_tokens,
		}

		headers: dict[str, str] = {}
		if model.requires_auth:
			if AZURE_URL_PATTERN in model.url:
				headers["api-key"] = model.api_key
			else:
				headers["Authorization"] = f"Bearer {model.api_key}"

		return PreparedRequest.json_post(model.url, payload, headers)

	async def generate(
		self,
		model: ModelConfig,
		diff: str,
		custom_instruction: str | None = None,
		truncated: bool = False,
	) -> CommitMessageResult | GenerationError:
		"""
		Generate a commit message for ``diff`` with ``model``.

		Returns:
		    The cleaned message and usage, or the failure variant describing why not

		Raises:
		    ValueError: If ``diff`` is empty

		"""
		if not diff.strip():
			msg = "Diff cannot be empty"
			raise ValueError(msg)

		if model.requires_auth and not model.api_key:
			logger.debug("Model '%s' requires auth but has no API key", model.name)
			return AuthenticationFailed(detail=f"no API key is configured for model '{model.name}'")

		messages = build_messages(diff, custom_instruction, model.system_prompt, truncated=truncated)
		request = self.prepare_request(model, messages)
		logger.debug(
			"Requesting %s via %s (%d diff chars, temperature=%s)", model.model_id, model.url, len(diff), model.temperature
		)

		outcome = await self.retry_policy.execute(lambda: self.transport.send(request))
		if isinstance(outcome, RateLimited | TransientTransport):
			return outcome
		return self.interpret_response(outcome, truncated=truncated)

	def interpret_response(self, response: httpx.Response, truncated: bool = False) -> CommitMessageResult | GenerationError:
		"""Map a settled (non-retryable) response onto a result or failure variant."""
		body = response.text
		if response.status_code >= 400:
			return self._map_error(response.status_code, body)

		try:
			data = response.json()
		except ValueError:
			logger.exception("Endpoint returned a non-JSON body")
			return ApiRequestFailed(status_code=response.status_code, body=f"invalid JSON response: {body[:200]}")

		if not isinstance(data, dict):
			return ApiRequestFailed(status_code=response.status_code, body=f"unexpected response: {body[:200]}")

		if data.get("error") and not data.get("choices"):
			# Some gateways report upstream failures inside a 200 response
			return self._map_error(response.status_code, body)

		usage = data.get("usage") or {}
		content = None
		choices = data.get("choices") or []
		if choices and isinstance(choices[0], dict):
			content = (choices[0].get("message") or {}).get("content")

		message = clean_commit_message(content) if isinstance(content, str) else ""
		if not message:
			logger.warning("Provider returned an empty commit message, using the fallback message")
			message = FALLBACK_COMMIT_MESSAGE

		logger.debug("Generated commit message with %d characters", len(message))
		return CommitMessageResult(
			message=message,
			input_tokens=usage.get("prompt_tokens"),
			output_tokens=usage.get("completion_tokens"),
			total_tokens=usage.get("total_tokens"),
			truncated=truncated,
		)

	def _map_error(self, status_code: int, body: str) -> GenerationError:
		error_text = _error_text(body)
		logger.debug("API error %d: %s", status_code, body)

		if status_code in AUTH_ERROR_STATUSES or any(marker in body for marker in AUTH_ERROR_MARKERS):
			return AuthenticationFailed(detail=error_text[:200], status_code=status_code)

		if (status_code in CONTEXT_ERROR_STATUSES or status_code < 400) and looks_like_context_overflow(body):
			exceeded = ContextLengthExceeded.from_api_message(error_text)
			logger.debug(
				"Context length exceeded (max=%s, requested=%s)", exceeded.max_context, exceeded.requested_tokens
			)
			return exceeded

		return ApiRequestFailed(status_code=status_code, body=error_text)
