"""Command for generating a commit message from the working-tree diff."""

from __future__ import annotations

import logging
from typing import Annotated

import asyncer
import typer

logger = logging.getLogger(__name__)

# --- Command Argument Annotations ---

ArgsArg = Annotated[
	list[str] | None,
	typer.Argument(
		help="'@model' selects a model by name, alias or prefix; every other word is a custom instruction.",
		show_default=False,
	),
]

ModelOpt = Annotated[
	str | None,
	typer.Option("--model", "-m", help="Model name, alias or ID to use instead of the default."),
]

PreviewFlag = Annotated[
	bool,
	typer.Option("--preview", "-p", help="Show token and cost estimates without calling the model."),
]


def parse_generate_args(args: list[str] | None, model: str | None = None) -> tuple[str | None, str | None]:
	"""
	Split positional arguments into a model identifier and an instruction.

	The first token starting with '@' names the model, unless ``model`` was
	given explicitly; the remaining tokens are joined into the instruction.

	Returns:
	    ``(identifier, instruction)``, either of which may be None

	"""
	identifier = model.strip() if model and model.strip() else None
	words: list[str] = []
	for token in args or []:
		if identifier is None and token.startswith("@") and len(token) > 1:
			identifier = token
			continue
		words.append(token)
	instruction = " ".join(words).strip()
	return identifier, instruction or None


# --- Registration Function ---


def register_command(app: typer.Typer) -> None:
	"""Register the generate command with the CLI app."""

	@app.command(name="generate")
	@asyncer.runnify
	async def generate_command(
		args: ArgsArg = None,
		model: ModelOpt = None,
		preview: PreviewFlag = False,
	) -> None:
		"""
		Generate a commit message for the uncommitted changes.

		Examples: gitgen, gitgen @fast, gitgen @fast "focus on the API change", gitgen -p

		"""
		await _generate_command_impl(args=args, model=model, preview=preview)


# --- Implementation Function (Heavy imports deferred here) ---


async def _generate_command_impl(args: list[str] | None, model: str | None, preview: bool) -> None:
	from gitgen.config import SettingsStore
	from gitgen.git import RepositoryReader
	from gitgen.interaction import ConsoleInteraction
	from gitgen.llm import ChatCompletionClient, HttpTransport, RetryPolicy
	from gitgen.orchestrator import GenerationOrchestrator
	from gitgen.utils.cli_utils import console, exit_with_error, handle_keyboard_interrupt

	identifier, instruction = parse_generate_args(args, model)
	logger.debug("Generate: identifier=%r, instruction=%r, preview=%s", identifier, instruction, preview)

	try:
		async with HttpTransport() as transport:
			orchestrator = GenerationOrchestrator(
				store=SettingsStore(),
				repository=RepositoryReader(),
				client=ChatCompletionClient(transport, RetryPolicy()),
				interaction=ConsoleInteraction(),
				console=console,
			)
			exit_code = await orchestrator.run(identifier, instruction, preview=preview)
	except KeyboardInterrupt:
		handle_keyboard_interrupt()
	except Exception as e:
		logger.exception("An unexpected error occurred during commit message generation.")
		exit_with_error(f"An unexpected error occurred: {e}", exception=e)
	else:
		if exit_code:
			raise typer.Exit(exit_code)
