"""Tests for the chat-completion client over a mocked HTTP transport."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import httpx
import pytest

from gitgen.constants import FALLBACK_COMMIT_MESSAGE
from gitgen.llm import (
	ApiRequestFailed,
	AuthenticationFailed,
	ChatCompletionClient,
	CommitMessageResult,
	ContextLengthExceeded,
	HttpTransport,
	RetryPolicy,
	TransientTransport,
)

if TYPE_CHECKING:
	from collections.abc import Callable

	from gitgen.config import ModelConfig
	from gitgen.llm import GenerationError

CONTEXT_ERROR = {
	"error": {
		"message": (
			"This model's maximum context length is 8000 tokens. However, you requested 9000 tokens "
			"(8500 in the messages, 500 in the completion). Please reduce the length of the messages."
		),
		"type": "invalid_request_error",
		"code": "context_length_exceeded",
	}
}


def _completion(content: str | None, usage: dict | None = None) -> dict:
	body: dict = {"choices": [{"index": 0, "message": {"role": "assistant", "content": content}}]}
	if usage is not None:
		body["usage"] = usage
	return body


async def _no_sleep(_delay: float) -> None:
	return None


class RecordingHandler:
	"""MockTransport handler that replays responses and keeps every request."""

	def __init__(self, *responses: httpx.Response) -> None:
		self.responses = list(responses)
		self.requests: list[httpx.Request] = []

	def __call__(self, request: httpx.Request) -> httpx.Response:
		self.requests.append(request)
		index = min(len(self.requests), len(self.responses)) - 1
		return self.responses[index]

	@property
	def payloads(self) -> list[dict]:
		return [json.loads(request.content) for request in self.requests]


async def _generate(
	handler: RecordingHandler, model: ModelConfig, diff: str, **kwargs: object
) -> CommitMessageResult | GenerationError:
	async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
		client = ChatCompletionClient(HttpTransport(client=http), RetryPolicy(sleep=_no_sleep))
		return await client.generate(model, diff, **kwargs)  # type: ignore[arg-type]


@pytest.mark.unit
class TestRequests:
	"""Payload and header construction."""

	@pytest.mark.asyncio
	async def test_success_returns_cleaned_message_and_usage(
		self, make_model: Callable[..., ModelConfig], sample_diff: str
	) -> None:
		"""Content is cleaned and usage copied from the response."""
		handler = RecordingHandler(
			httpx.Response(
				200,
				json=_completion(
					'"Add sys import to app"',
					{"prompt_tokens": 120, "completion_tokens": 12, "total_tokens": 132},
				),
			)
		)

		result = await _generate(handler, make_model(), sample_diff)

		assert isinstance(result, CommitMessageResult)
		assert result.message == "Add sys import to app"
		assert (result.input_tokens, result.output_tokens, result.total_tokens) == (120, 12, 132)
		assert result.has_usage
		assert result.truncated is False

	@pytest.mark.asyncio
	async def test_payload_and_bearer_auth(self, make_model: Callable[..., ModelConfig], sample_diff: str) -> None:
		"""The diff is the user message and the key a bearer token."""
		handler = RecordingHandler(httpx.Response(200, json=_completion("Update app")))
		model = make_model("gpt4", temperature=0.5, max_output_tokens=800)

		await _generate(handler, model, sample_diff, custom_instruction="be brief")

		request = handler.requests[0]
		payload = handler.payloads[0]
		assert str(request.url) == model.url
		assert request.headers["Authorization"] == f"Bearer {model.api_key}"
		assert payload["model"] == "gpt4-model"
		assert payload["temperature"] == 0.5
		assert payload["max_completion_tokens"] == 800
		assert "max_tokens" not in payload
		assert [message["role"] for message in payload["messages"]] == ["system", "user"]
		assert payload["messages"][1]["content"] == sample_diff
		assert "BE BRIEF" in payload["messages"][0]["content"]

	@pytest.mark.asyncio
	async def test_legacy_max_tokens(self, make_model: Callable[..., ModelConfig], sample_diff: str) -> None:
		"""The legacy flag switches the token parameter name."""
		handler = RecordingHandler(httpx.Response(200, json=_completion("Update app")))

		await _generate(handler, make_model(use_legacy_max_tokens=True), sample_diff)

		assert handler.payloads[0]["max_tokens"] == 5000
		assert "max_completion_tokens" not in handler.payloads[0]

	@pytest.mark.asyncio
	async def test_azure_uses_api_key_header(self, make_model: Callable[..., ModelConfig], sample_diff: str) -> None:
		"""Azure OpenAI endpoints get an api-key header instead of a bearer token."""
		handler = RecordingHandler(httpx.Response(200, json=_completion("Update app")))
		model = make_model(url="https://acme.openai.azure.com/openai/deployments/gpt4/chat/completions?api-version=2024-06-01")

		await _generate(handler, model, sample_diff)

		assert handler.requests[0].headers["api-key"] == model.api_key
		assert "Authorization" not in handler.requests[0].headers

	@pytest.mark.asyncio
	async def test_no_auth_model_sends_no_credentials(
		self, make_model: Callable[..., ModelConfig], sample_diff: str
	) -> None:
		"""Local endpoints that need no key get no auth header."""
		handler = RecordingHandler(httpx.Response(200, json=_completion("Update app")))

		await _generate(handler, make_model(requires_auth=False, api_key=""), sample_diff)

		assert "Authorization" not in handler.requests[0].headers

	@pytest.mark.asyncio
	async def test_retries_resend_the_full_body(self, make_model: Callable[..., ModelConfig], sample_diff: str) -> None:
		"""Every attempt carries an identical, complete request body."""
		handler = RecordingHandler(
			httpx.Response(503, text="busy"),
			httpx.Response(502, text="bad gateway"),
			httpx.Response(200, json=_completion("Update app")),
		)

		result = await _generate(handler, make_model(), sample_diff)

		assert isinstance(result, CommitMessageResult)
		assert len(handler.requests) == 3
		assert len({request.content for request in handler.requests}) == 1
		assert handler.payloads[2]["messages"][1]["content"] == sample_diff

	@pytest.mark.asyncio
	async def test_empty_diff_is_rejected(self, make_model: Callable[..., ModelConfig]) -> None:
		"""Generating for an empty diff is a caller error."""
		with pytest.raises(ValueError, match="empty"):
			await _generate(RecordingHandler(), make_model(), "  \n")


@pytest.mark.unit
class TestResponseMapping:
	"""Mapping of responses onto results and failure variants."""

	@pytest.mark.asyncio
	async def test_missing_key_fails_before_any_request(
		self, make_model: Callable[..., ModelConfig], sample_diff: str
	) -> None:
		"""A model that needs a key but has none never reaches the network."""
		handler = RecordingHandler(httpx.Response(200, json=_completion("unused")))

		result = await _generate(handler, make_model(api_key=""), sample_diff)

		assert isinstance(result, AuthenticationFailed)
		assert handler.requests == []

	@pytest.mark.asyncio
	async def test_unauthorized_is_not_retried(self, make_model: Callable[..., ModelConfig], sample_diff: str) -> None:
		"""A 401 maps to AuthenticationFailed after one attempt."""
		handler = RecordingHandler(
			httpx.Response(401, json={"error": {"message": "Incorrect API key provided", "code": "invalid_api_key"}})
		)

		result = await _generate(handler, make_model(), sample_diff)

		assert isinstance(result, AuthenticationFailed)
		assert result.status_code == 401
		assert len(handler.requests) == 1

	@pytest.mark.asyncio
	async def test_context_overflow_is_parsed(self, make_model: Callable[..., ModelConfig], sample_diff: str) -> None:
		"""A 400 describing the context window carries the reported figures."""
		handler = RecordingHandler(httpx.Response(400, json=CONTEXT_ERROR))

		result = await _generate(handler, make_model(), sample_diff)

		assert isinstance(result, ContextLengthExceeded)
		assert result.max_context == 8000
		assert result.requested_tokens == 9000
		assert (result.prompt_tokens, result.completion_tokens) == (8500, 500)
		assert len(handler.requests) == 1

	@pytest.mark.asyncio
	async def test_other_client_error(self, make_model: Callable[..., ModelConfig], sample_diff: str) -> None:
		"""Unrecognised 4xx responses are ApiRequestFailed."""
		handler = RecordingHandler(httpx.Response(404, json={"error": {"message": "model not found"}}))

		result = await _generate(handler, make_model(), sample_diff)

		assert isinstance(result, ApiRequestFailed)
		assert result.status_code == 404
		assert "model not found" in result.message

	@pytest.mark.asyncio
	async def test_error_inside_ok_response(self, make_model: Callable[..., ModelConfig], sample_diff: str) -> None:
		"""Gateways that wrap an auth failure in a 200 are still mapped."""
		handler = RecordingHandler(httpx.Response(200, json={"error": {"message": "Invalid API key"}}))

		result = await _generate(handler, make_model(), sample_diff)

		assert isinstance(result, AuthenticationFailed)

	@pytest.mark.asyncio
	async def test_server_errors_exhaust_retries(
		self, make_model: Callable[..., ModelConfig], sample_diff: str
	) -> None:
		"""Persistent 500s stop after three attempts."""
		handler = RecordingHandler(httpx.Response(500, text="boom"))

		result = await _generate(handler, make_model(), sample_diff)

		assert isinstance(result, TransientTransport)
		assert len(handler.requests) == 3

	@pytest.mark.asyncio
	@pytest.mark.parametrize("content", [None, "", "   ", "<think>only reasoning</think>"])
	async def test_empty_content_uses_fallback(
		self, make_model: Callable[..., ModelConfig], sample_diff: str, content: str | None
	) -> None:
		"""A response without usable content yields the fallback message."""
		handler = RecordingHandler(httpx.Response(200, json=_completion(content)))

		result = await _generate(handler, make_model(), sample_diff)

		assert isinstance(result, CommitMessageResult)
		assert result.message == FALLBACK_COMMIT_MESSAGE
		assert not result.has_usage

	@pytest.mark.asyncio
	async def test_truncated_flag_is_carried(self, make_model: Callable[..., ModelConfig], sample_diff: str) -> None:
		"""The truncated flag reaches the result and the system prompt."""
		handler = RecordingHandler(httpx.Response(200, json=_completion("Update app")))

		result = await _generate(handler, make_model(), sample_diff, truncated=True)

		assert isinstance(result, CommitMessageResult)
		assert result.truncated is True
		assert "truncated" in handler.payloads[0]["messages"][0]["content"]
