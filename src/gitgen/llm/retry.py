"""
Bounded, classification-driven retries for a single HTTP request.

A pure function classifies each attempt and another computes the wait
before the next one. The attempt counter never exceeds ``max_attempts``.

"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import TYPE_CHECKING

import httpx

from gitgen.constants import MAX_ATTEMPTS, RATE_LIMIT_BACKOFF_FACTOR, RETRYABLE_STATUS_CODES

from .errors import RateLimited, TransientTransport

if TYPE_CHECKING:
	from collections.abc import Awaitable, Callable, Mapping

logger = logging.getLogger(__name__)

TOO_MANY_REQUESTS = 429


class Outcome(enum.Enum):
	"""How a finished attempt should be treated."""

	SUCCESS = "success"
	RETRYABLE = "retryable"
	TERMINAL = "terminal"


@dataclass
class RetryState:
	"""Progress of one logical call."""

	attempt: int = 0
	last_failure: str | None = None
	last_status: int | None = None
	retry_after: float | None = None
	delay: float = 0.0


def classify_status(status_code: int) -> Outcome:
	"""
	Classify an HTTP status code.

	408, 429 and every 5xx are retryable; every other 4xx is terminal.

	"""
	if status_code < 400:
		return Outcome.SUCCESS
	if status_code in RETRYABLE_STATUS_CODES or status_code >= 500:
		return Outcome.RETRYABLE
	return Outcome.TERMINAL


def classify_exception(exc: BaseException) -> Outcome:
	"""Transport-level connection and timeout failures are retryable; nothing else is."""
	if isinstance(exc, httpx.TransportError):
		return Outcome.RETRYABLE
	return Outcome.TERMINAL


def parse_retry_after(headers: Mapping[str, str]) -> float | None:
	"""
	Read a server-supplied retry delay in seconds.

	Accepts ``Retry-After`` as delta-seconds or an HTTP date, and the
	``retry-after-ms`` header some OpenAI-compatible servers send.

	"""
	retry_after_ms = headers.get("retry-after-ms")
	if retry_after_ms:
		try:
			return max(float(retry_after_ms) / 1000.0, 0.0)
		except ValueError:
			pass

	retry_after = headers.get("retry-after")
	if not retry_after:
		return None
	try:
		return max(float(retry_after), 0.0)
	except ValueError:
		pass
	try:
		when = parsedate_to_datetime(retry_after)
	except (TypeError, ValueError):
		return None
	if when.tzinfo is None:
		when = when.replace(tzinfo=UTC)
	return max((when - datetime.now(tz=UTC)).total_seconds(), 0.0)


def compute_delay(attempt: int, status_code: int | None = None, retry_after: float | None = None) -> float:
	"""
	Seconds to wait after a failed ``attempt`` (1-based) before the next one.

	A 429 honours the server's delay when given and otherwise backs off
	exponentially; every other retryable failure waits ``attempt`` seconds.

	"""
	if status_code == TOO_MANY_REQUESTS:
		if retry_after is not None:
			return retry_after
		return RATE_LIMIT_BACKOFF_FACTOR * (2**attempt)
	return float(attempt)


class RetryPolicy:
	"""Runs an async request factory with at most ``max_attempts`` attempts."""

	def __init__(
		self,
		max_attempts: int = MAX_ATTEMPTS,
		sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
	) -> None:
		"""
		Initialize the policy.

		Args:
		    max_attempts: Total attempts allowed, including the first
		    sleep: Coroutine used to wait between attempts

		"""
		if max_attempts < 1:
			msg = "max_attempts must be at least 1"
			raise ValueError(msg)
		self.max_attempts = max_attempts
		self._sleep = sleep

	async def execute(
		self, operation: Callable[[], Awaitable[httpx.Response]]
	) -> httpx.Response | RateLimited | TransientTransport:
		"""
		Run ``operation`` until it yields a non-retryable result or attempts run out.

		``operation`` must build and send a fresh request on every call.
		Successful and terminal responses are returned as-is for the caller to
		interpret. Exceptions that are not transport failures propagate after
		the first attempt.

		Returns:
		    The final response, or a RateLimited / TransientTransport failure when
		    the last attempt was still retryable

		"""
		state = RetryState()

		while True:
			state.attempt += 1
			try:
				response = await operation()
			except Exception as e:
				if classify_exception(e) is Outcome.TERMINAL:
					raise
				state.last_status = None
				state.retry_after = None
				state.last_failure = f"{type(e).__name__}: {e}" if str(e) else type(e).__name__
				logger.warning("Attempt %d/%d failed: %s", state.attempt, self.max_attempts, state.last_failure)
			else:
				if classify_status(response.status_code) is not Outcome.RETRYABLE:
					if state.attempt > 1:
						logger.debug("Request settled with status %d on attempt %d", response.status_code, state.attempt)
					return response
				state.last_status = response.status_code
				state.retry_after = parse_retry_after(response.headers)
				state.last_failure = f"HTTP {response.status_code}: {response.text[:200]}"
				logger.warning(
					"Attempt %d/%d failed with status %d", state.attempt, self.max_attempts, response.status_code
				)

			if state.attempt >= self.max_attempts:
				return self._exhausted(state)

			state.delay = compute_delay(state.attempt, state.last_status, state.retry_after)
			if state.last_status == TOO_MANY_REQUESTS:
				logger.warning("Rate limited. Waiting %.1f seconds before retry", state.delay)
			else:
				logger.warning("Waiting %.1f seconds before retry attempt %d", state.delay, state.attempt + 1)
			await self._sleep(state.delay)

	def _exhausted(self, state: RetryState) -> RateLimited | TransientTransport:
		logger.error("Giving up after %d attempt(s): %s", state.attempt, state.last_failure)
		if state.last_status == TOO_MANY_REQUESTS:
			return RateLimited(attempts=state.attempt, retry_after=state.retry_after, detail=state.last_failure or "")
		return TransientTransport(
			attempts=state.attempt, detail=state.last_failure or "unknown error", status_code=state.last_status
		)
