"""HTTP transport for chat-completion requests."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Self

import httpx

from gitgen import __version__
from gitgen.constants import HTTP_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreparedRequest:
	"""
	A fully serialized request that can be sent any number of times.

	The body is held as bytes, so every attempt materializes an independent
	``httpx.Request`` instead of re-sending a consumed stream.

	"""

	method: str
	url: str
	body: bytes = b""
	headers: dict[str, str] = field(default_factory=dict)

	@classmethod
	def json_post(cls, url: str, payload: dict[str, Any], headers: dict[str, str] | None = None) -> Self:
		"""Serialize ``payload`` as a JSON POST to ``url``."""
		all_headers = {
			"Content-Type": "application/json",
			"Accept": "application/json",
			"User-Agent": f"gitgen/{__version__}",
			**(headers or {}),
		}
		return cls(method="POST", url=url, body=json.dumps(payload).encode("utf-8"), headers=all_headers)

	def materialize(self) -> httpx.Request:
		"""Build a fresh request object for one attempt."""
		return httpx.Request(self.method, self.url, headers=self.headers, content=self.body)


class HttpTransport:
	"""Sends prepared requests over a shared ``httpx.AsyncClient``."""

	def __init__(self, client: httpx.AsyncClient | None = None, timeout: float = HTTP_TIMEOUT_SECONDS) -> None:
		"""
		Initialize the transport.

		Args:
		    client: Client to use; one is created (and owned) when omitted
		    timeout: Per-request timeout in seconds for an owned client

		"""
		self._owns_client = client is None
		self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout, connect=10.0))

	async def send(self, request: PreparedRequest) -> httpx.Response:
		"""
		Send one attempt of ``request``.

		Returns:
		    The response, whatever its status code

		Raises:
		    httpx.TransportError: On connection failures and timeouts

		"""
		logger.debug("%s %s (%d byte body)", request.method, request.url, len(request.body))
		response = await self._client.send(request.materialize())
		logger.debug("Received status %d from %s", response.status_code, request.url)
		return response

	async def aclose(self) -> None:
		"""Close the underlying client if this transport created it."""
		if self._owns_client:
			await self._client.aclose()

	async def __aenter__(self) -> Self:
		return self

	async def __aexit__(self, *exc_info: object) -> None:
		await self.aclose()
