"""
Runs one commit-message generation from model resolution to side effects.

The flow is:

1. resolve the requested model, or the default (healing it once if needed)
2. read the working-tree diff
3. preview, or confirm when the settings ask for it
4. generate, with at most one truncate-and-retry after a context overflow
5. display the message, then usage, clipboard and usage-log side effects

``run`` returns the process exit code: 0 on success, on cancellation and when
there is nothing to commit; 1 on every terminal failure.

"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

import pyperclip
from rich.console import Console

from gitgen.config import ConfigError
from gitgen.constants import (
	AUTHENTICATION_FAILED,
	AUTHENTICATION_GUIDANCE,
	CONTEXT_LENGTH_EXCEEDED,
	DEFAULT_CONTEXT_LENGTH,
	GENERATION_CANCELLED,
	NO_GIT_REPOSITORY,
	NO_UNCOMMITTED_CHANGES,
	OUTPUT_RESERVATION_GUIDANCE,
)
from gitgen.git import GitError, truncate_diff
from gitgen.llm.client import CommitMessageResult
from gitgen.llm.errors import (
	Ambiguous,
	ApiRequestFailed,
	AuthenticationFailed,
	ContextLengthExceeded,
	Fatal,
	NotFound,
	RateLimited,
	TransientTransport,
)
from gitgen.llm.tokens import estimate_system_prompt_tokens, estimate_tokens, tokens_to_char_budget
from gitgen.resolution import DefaultHealer, Found, HealOutcome, ModelResolver
from gitgen.utils.cli_utils import loading_spinner, show_error, show_warning
from gitgen.utils.cost import format_cost, format_currency, format_pricing
from gitgen.utils.usage import UsageEntry, UsageRecorder

if TYPE_CHECKING:
	from collections.abc import Callable

	from gitgen.config import ModelConfig, Settings, SettingsStore
	from gitgen.git import RepositoryReader
	from gitgen.interaction import Interaction
	from gitgen.llm import ChatCompletionClient
	from gitgen.llm.errors import GenerationError

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1


def copy_to_system_clipboard(text: str) -> None:
	pyperclip.copy(text)


class GenerationOrchestrator:
	"""Drives a single ``gitgen`` invocation."""

	def __init__(
		self,
		store: SettingsStore,
		repository: RepositoryReader,
		client: ChatCompletionClient,
		interaction: Interaction,
		console: Console | None = None,
		clipboard: Callable[[str], None] | None = None,
		usage_recorder: UsageRecorder | None = None,
	) -> None:
		"""
		Initialize the orchestrator.

		Args:
		    store: Settings store holding the configured models
		    repository: Reader for the working tree's diff
		    client: Chat-completion client, already wrapping the retry policy
		    interaction: Port for confirmations and default-model selection
		    console: Console for user-facing output
		    clipboard: Function that copies text to the clipboard
		    usage_recorder: Destination of the usage log

		"""
		self.store = store
		self.repository = repository
		self.client = client
		self.interaction = interaction
		self.console = console or Console()
		self.clipboard = clipboard or copy_to_system_clipboard
		self.usage_recorder = usage_recorder or UsageRecorder()

	async def run(self, identifier: str | None = None, instruction: str | None = None, preview: bool = False) -> int:
		"""
		Generate a commit message for the current working tree.

		Args:
		    identifier: Model id, name, alias or prefix; None selects the default model
		    instruction: Optional free-text guidance for the model
		    preview: Show the token and cost estimate without calling the API

		Returns:
		    The exit code

		"""
		try:
			return await self._run(identifier, instruction or None, preview)
		except Exception as e:
			logger.exception("Commit message generation failed")
			failure = Fatal(cause=e)
			show_error(failure.message)
			return EXIT_FAILURE

	async def _run(self, identifier: str | None, instruction: str | None, preview: bool) -> int:
		try:
			settings = self.store.load_settings()
		except ConfigError as e:
			show_error(str(e))
			return EXIT_FAILURE

		model = await self.select_model(settings, identifier)
		if model is None:
			return EXIT_FAILURE

		if not self.repository.is_repository():
			show_error(NO_GIT_REPOSITORY)
			return EXIT_FAILURE

		try:
			diff = self.repository.get_diff()
		except GitError as e:
			show_error("Could not read the repository diff.", e)
			return EXIT_FAILURE

		if not diff.strip():
			self.console.print(f"[blue]i[/blue] {NO_UNCOMMITTED_CHANGES}")
			return EXIT_SUCCESS

		if preview:
			self.console.print("[bold][PREVIEW MODE - No LLM call will be made][/bold]\n")
			self.show_estimate(model, diff, instruction)
			self.console.print("\n[dim]To generate an actual commit message, run without -p.[/dim]")
			return EXIT_SUCCESS

		if settings.settings.require_confirmation and not await self._confirm_send(model, diff, instruction):
			self.console.print(GENERATION_CANCELLED)
			return EXIT_SUCCESS

		started = time.monotonic()
		outcome = await self._generate(model, diff, instruction, truncated=False)

		if isinstance(outcome, ContextLengthExceeded):
			self.report_context_overflow(outcome, model, diff, instruction)
			plan = truncate_diff(diff, self.truncation_budget(outcome, model, instruction))
			logger.info(
				"Truncated diff from %d to %d characters (%d file(s) omitted)",
				len(diff),
				len(plan.text),
				plan.omitted_file_count,
			)
			if not plan.was_truncated:
				show_error(f"{CONTEXT_LENGTH_EXCEEDED}\n{outcome.message}\n\n{OUTPUT_RESERVATION_GUIDANCE}")
				return EXIT_FAILURE
			self.console.print("Retrying once with a truncated diff...")
			if settings.settings.require_confirmation and not await self._confirm_send(
				model, plan.text, instruction, prompt="Send truncated diff to LLM?"
			):
				self.console.print(GENERATION_CANCELLED)
				return EXIT_SUCCESS
			started = time.monotonic()
			outcome = await self._generate(model, plan.text, instruction, truncated=True)

		match outcome:
			case CommitMessageResult():
				self.finish(settings, model, outcome, time.monotonic() - started)
				return EXIT_SUCCESS
			case ContextLengthExceeded():
				show_error(f"{CONTEXT_LENGTH_EXCEEDED}\n{outcome.message}\nThe truncated diff did not fit either.")
				return EXIT_FAILURE
			case AuthenticationFailed():
				show_error(f"{AUTHENTICATION_FAILED}\n{outcome.message}\n\n{AUTHENTICATION_GUIDANCE}")
				return EXIT_FAILURE
			case RateLimited() | TransientTransport() | ApiRequestFailed():
				show_error(outcome.message)
				return EXIT_FAILURE

		msg = f"Unhandled generation outcome: {outcome!r}"
		raise TypeError(msg)

	async def _generate(
		self, model: ModelConfig, diff: str, instruction: str | None, truncated: bool
	) -> CommitMessageResult | GenerationError:
		with loading_spinner(f"Generating commit message with {model.name}..."):
			return await self.client.generate(model, diff, instruction, truncated=truncated)

	# --- Model selection ---

	async def select_model(self, settings: Settings, identifier: str | None) -> ModelConfig | None:
		"""
		Pick the model for this run, reporting why when there is none.

		An explicit identifier that fails to resolve is reported as is and
		never falls back to the default model.

		"""
		if identifier:
			resolution = ModelResolver(settings).resolve(identifier)
			match resolution:
				case Found():
					logger.debug("Using model '%s' (matched by %s)", resolution.model.name, resolution.layer)
					return resolution.model
				case Ambiguous():
					self.report_ambiguous(resolution, settings)
				case NotFound():
					self.report_not_found(resolution, settings)
			return None

		if not settings.models:
			show_error("No models are configured. Add one with: gitgen models add <name> --model-id <id> --url <url>")
			return None

		model = settings.default_model
		if model is not None:
			return model

		result = await DefaultHealer(self.store, self.interaction).heal(settings)
		if result.outcome is not HealOutcome.HEALED:
			show_error(f"{result.reason}\nChoose one with: gitgen models default <model>")
			return None

		healed = result.settings
		if not healed.default_model_id:
			show_error("The default model could not be restored.")
			return None
		resolution = ModelResolver(healed).resolve(healed.default_model_id)
		if isinstance(resolution, Found):
			return resolution.model
		show_error("The default model could not be restored.")
		return None

	def report_not_found(self, failure: NotFound, settings: Settings) -> None:
		show_error(failure.message)
		if not settings.models:
			self.console.print("No models configured. Add one with: gitgen models add")
			return
		resolver = ModelResolver(settings)
		self.console.print("Did you mean one of these?\n")
		self.show_models(resolver.suggestions(failure.identifier), settings)
		self.console.print("Usage: gitgen @modelname [instruction]")

	def report_ambiguous(self, failure: Ambiguous, settings: Settings) -> None:
		show_error(failure.message)
		self.console.print("Use a longer prefix or the full name of one of these:\n")
		self.show_models(tuple(sorted(failure.candidates, key=lambda model: model.name.lower())), settings)

	def show_models(self, models: tuple[ModelConfig, ...], settings: Settings) -> None:
		for model in models:
			marker = " [yellow](default)[/yellow]" if model.id == settings.default_model_id else ""
			self.console.print(f"  [green]{model.name}[/green]{marker}")
			if model.aliases:
				self.console.print(f"    Aliases: {model.display_aliases()}")
			self.console.print(
				f"    [dim]Type: {model.type} | Provider: {model.provider or '-'} | Model: {model.model_id}[/dim]"
			)
			self.console.print(f"    [dim]URL: {model.url}[/dim]")
			if model.pricing is not None:
				self.console.print(f"    [dim]Pricing: {format_pricing(model.pricing)}[/dim]")
			self.console.print()

	# --- Estimates and confirmation ---

	def show_estimate(self, model: ModelConfig, diff: str, instruction: str | None) -> None:
		"""Print model, diff size, token and (when priced) cost estimates."""
		system_tokens = estimate_system_prompt_tokens(model.system_prompt, instruction)
		diff_tokens = estimate_tokens(diff)
		input_tokens = system_tokens + diff_tokens
		output_tokens = model.max_output_tokens // 2

		self.console.print(f"Model: {model.name} ({model.model_id} via {model.provider or model.url})")
		self.console.print(f"Git diff: {len(diff.splitlines()):,} lines, {len(diff):,} characters")
		self.console.print("Estimated tokens:")
		self.console.print(f"   • System prompt: ~{system_tokens:,} tokens")
		self.console.print(f"   • Git diff: ~{diff_tokens:,} tokens")
		self.console.print(f"   • Total input: ~{input_tokens:,} tokens")
		self.console.print(f"   • Estimated output: ~{output_tokens:,} tokens (midpoint of {model.max_output_tokens:,} max)")

		if model.pricing is not None:
			pricing = model.pricing
			input_cost = input_tokens / 1_000_000 * pricing.input_per_1m
			output_cost = output_tokens / 1_000_000 * pricing.output_per_1m
			self.console.print("Estimated cost:")
			self.console.print(f"   • Input: ~{format_currency(input_cost, pricing.currency_code)}")
			self.console.print(f"   • Output: ~{format_currency(output_cost, pricing.currency_code)}")
			self.console.print(f"   • Total: ~{format_currency(input_cost + output_cost, pricing.currency_code)}")

		if instruction:
			self.console.print(f'\nCustom instruction: "{instruction}"', markup=False)

	async def _confirm_send(
		self, model: ModelConfig, diff: str, instruction: str | None, prompt: str = "Send to LLM?"
	) -> bool:
		self.show_estimate(model, diff, instruction)
		self.console.print()
		return await self.interaction.confirm(prompt, default=False)

	# --- Context overflow ---

	def truncation_budget(self, failure: ContextLengthExceeded, model: ModelConfig, instruction: str | None) -> int:
		"""
		Character budget for the truncated diff after ``failure``.

		The context window is taken from the error, then the model config, then
		a conservative default; the estimated system prompt is subtracted.

		"""
		context = failure.max_context or model.context_length or DEFAULT_CONTEXT_LENGTH
		available = context - estimate_system_prompt_tokens(model.system_prompt, instruction)
		budget = tokens_to_char_budget(available)
		logger.debug("Truncation budget: %d context tokens, %d available, %d chars", context, available, budget)
		return budget

	def report_context_overflow(
		self, failure: ContextLengthExceeded, model: ModelConfig, diff: str, instruction: str | None
	) -> None:
		lines = [CONTEXT_LENGTH_EXCEEDED]
		if failure.max_context:
			lines.append(f"This model's maximum context length is {failure.max_context:,} tokens")
		system_tokens = estimate_system_prompt_tokens(model.system_prompt, instruction)
		diff_tokens = estimate_tokens(diff)
		if failure.requested_tokens and failure.prompt_tokens is not None and failure.completion_tokens is not None:
			lines.append(f"Your request used {failure.requested_tokens:,} tokens:")
			lines.append(f"   • Messages: {failure.prompt_tokens:,} tokens")
			lines.append(f"   • Completion: {failure.completion_tokens:,} tokens")
		else:
			requested = failure.requested_tokens or system_tokens + diff_tokens
			lines.append(f"Your request used ~{requested:,} tokens:")
			lines.append(f"   • System prompt: ~{system_tokens:,} tokens")
			lines.append(f"   • Git diff: ~{diff_tokens:,} tokens")
		show_warning("\n".join(lines))

	# --- Success side effects ---

	def finish(self, settings: Settings, model: ModelConfig, result: CommitMessageResult, duration: float) -> None:
		"""
		Display the message, then run the optional side effects in order.

		Usage display, clipboard copy, usage recording and the last-used
		timestamp are each best effort.

		"""
		title = "Generated Commit Message (from truncated diff):" if result.truncated else "Generated Commit Message:"
		self.console.print(f"[green]✔ {title}[/green]")
		self.console.print(f'"{result.message}"', style="cyan", markup=False, highlight=False)
		self.console.print()

		app = settings.settings
		if app.show_token_usage and result.has_usage:
			info = (
				f"Generated with {result.input_tokens:,} input tokens, {result.output_tokens:,} output tokens "
				f"({result.total_tokens or 0:,} total)"
			)
			cost = format_cost(model, result.input_tokens or 0, result.output_tokens or 0)
			if cost:
				info += f" • Estimated cost: {cost}"
			self.console.print(info, style="dim", markup=False)

		if app.copy_to_clipboard:
			try:
				self.clipboard(result.message)
			except pyperclip.PyperclipException as e:
				logger.warning("Could not copy the commit message to the clipboard: %s", e)
			else:
				self.console.print("Commit message copied to clipboard.")

		if app.record_usage:
			self.usage_recorder.record(UsageEntry.from_result(model, result, duration))

		try:
			self.store.touch_last_used(model.id)
		except (ConfigError, OSError) as e:
			logger.warning("Could not update the last-used time of '%s': %s", model.name, e)
