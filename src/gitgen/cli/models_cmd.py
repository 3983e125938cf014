"""Commands for managing configured models."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Annotated

import asyncer
import typer
from pydantic import ValidationError
from rich.table import Table

from gitgen.config import ConfigError, ModelConfig, SettingsStore
from gitgen.constants import DEFAULT_MAX_OUTPUT_TOKENS, DEFAULT_OPENAI_URL, DEFAULT_TEMPERATURE
from gitgen.interaction import ConsoleInteraction
from gitgen.utils.cli_utils import console, exit_with_error, show_warning
from gitgen.utils.cost import format_pricing

if TYPE_CHECKING:
	from gitgen.config import Settings

logger = logging.getLogger(__name__)

models_cmd = typer.Typer(
	name="models",
	help="Manage the configured models.",
	no_args_is_help=True,
)
alias_cmd = typer.Typer(name="alias", help="Manage model aliases.", no_args_is_help=True)
models_cmd.add_typer(alias_cmd)

ModelArg = Annotated[str, typer.Argument(help="Model name, alias or ID.")]
AliasArg = Annotated[str, typer.Argument(help="Alias, with or without a leading '@'.")]


def _store() -> SettingsStore:
	return SettingsStore()


def _show_table(settings: Settings) -> None:
	table = Table(title="Configured Models")
	table.add_column("", style="yellow", width=1)
	table.add_column("Name", style="green")
	table.add_column("Aliases", style="cyan")
	table.add_column("Model", style="white")
	table.add_column("Provider / URL", style="dim")
	table.add_column("API key", style="dim")
	table.add_column("Pricing", style="dim")
	table.add_column("Last used", style="dim")

	for model in settings.models:
		table.add_row(
			"*" if model.id == settings.default_model_id else "",
			model.name,
			model.display_aliases(),
			model.model_id,
			f"{model.provider}\n{model.url}" if model.provider else model.url,
			model.masked_api_key() if model.requires_auth else "not required",
			format_pricing(model.pricing) if model.pricing else "",
			f"{model.last_used:%Y-%m-%d %H:%M}",
		)
	console.print(table)


@models_cmd.command(name="list")
def list_command() -> None:
	"""List the configured models; '*' marks the default."""
	try:
		settings = _store().load_settings()
	except ConfigError as e:
		exit_with_error(str(e))
		return

	if not settings.models:
		console.print("No models configured. Add one with: gitgen models add <name> --model-id <id>")
		return

	_show_table(settings)
	if settings.default_model is None:
		show_warning("No valid default model is set. Choose one with: gitgen models default <model>")


@models_cmd.command(name="add")
def add_command(
	name: Annotated[str, typer.Argument(help="Unique name for the model.")],
	model_id: Annotated[str, typer.Option("--model-id", help="Model name sent to the API, e.g. gpt-4o-mini.")],
	url: Annotated[str, typer.Option("--url", help="Chat completions endpoint URL.")] = DEFAULT_OPENAI_URL,
	api_key: Annotated[
		str | None, typer.Option("--api-key", envvar="GITGEN_API_KEY", help="API key for the endpoint.")
	] = None,
	provider: Annotated[str, typer.Option("--provider", help="Provider label, e.g. OpenAI.")] = "",
	alias: Annotated[list[str] | None, typer.Option("--alias", "-a", help="Alias; may be repeated.")] = None,
	temperature: Annotated[float, typer.Option("--temperature", help="Sampling temperature.")] = DEFAULT_TEMPERATURE,
	max_output_tokens: Annotated[
		int, typer.Option("--max-output-tokens", help="Maximum tokens to generate.")
	] = DEFAULT_MAX_OUTPUT_TOKENS,
	context_length: Annotated[
		int | None, typer.Option("--context-length", help="Context window of the model, in tokens.")
	] = None,
	no_auth: Annotated[bool, typer.Option("--no-auth", help="The endpoint needs no API key.")] = False,
	legacy_max_tokens: Annotated[
		bool, typer.Option("--legacy-max-tokens", help="Send 'max_tokens' instead of 'max_completion_tokens'.")
	] = False,
	input_price: Annotated[float | None, typer.Option("--input-price", help="Price per 1M input tokens.")] = None,
	output_price: Annotated[float | None, typer.Option("--output-price", help="Price per 1M output tokens.")] = None,
	currency: Annotated[str, typer.Option("--currency", help="ISO currency code of the prices.")] = "USD",
	system_prompt: Annotated[
		str | None, typer.Option("--system-prompt", help="Extra instructions appended to the system prompt.")
	] = None,
	note: Annotated[str | None, typer.Option("--note", help="Free-text note shown in listings.")] = None,
	make_default: Annotated[bool, typer.Option("--default", help="Make this the default model.")] = False,
) -> None:
	"""Add a model configuration."""
	pricing = None
	if input_price is not None or output_price is not None:
		pricing = {"input_per_1m": input_price or 0.0, "output_per_1m": output_price or 0.0, "currency_code": currency}

	try:
		model = ModelConfig.model_validate(
			{
				"name": name,
				"aliases": alias or [],
				"provider": provider,
				"url": url,
				"model_id": model_id,
				"api_key": api_key or "",
				"requires_auth": not no_auth,
				"use_legacy_max_tokens": legacy_max_tokens,
				"temperature": temperature,
				"max_output_tokens": max_output_tokens,
				"context_length": context_length,
				"pricing": pricing,
				"system_prompt": system_prompt,
				"note": note,
			}
		)
	except ValidationError as e:
		exit_with_error(f"Invalid model configuration: {e}")
		return

	store = _store()
	try:
		settings = store.add_model(model)
		if make_default and settings.default_model_id != model.id:
			store.set_default_model(model.id)
	except ConfigError as e:
		exit_with_error(str(e))
		return

	if model.requires_auth and not model.api_key:
		show_warning(f"Model '{model.name}' has no API key. Set one with: gitgen models update {model.name} --api-key <key>")
	console.print(f"[green]Added model '{model.name}'.[/green]")


@models_cmd.command(name="update")
def update_command(
	identifier: ModelArg,
	name: Annotated[str | None, typer.Option("--name", help="New name.")] = None,
	model_id: Annotated[str | None, typer.Option("--model-id", help="New API model name.")] = None,
	url: Annotated[str | None, typer.Option("--url", help="New endpoint URL.")] = None,
	api_key: Annotated[str | None, typer.Option("--api-key", help="New API key.")] = None,
	provider: Annotated[str | None, typer.Option("--provider", help="New provider label.")] = None,
	temperature: Annotated[float | None, typer.Option("--temperature", help="New temperature.")] = None,
	max_output_tokens: Annotated[int | None, typer.Option("--max-output-tokens", help="New output limit.")] = None,
	context_length: Annotated[int | None, typer.Option("--context-length", help="New context window.")] = None,
	system_prompt: Annotated[str | None, typer.Option("--system-prompt", help="New extra system prompt.")] = None,
	note: Annotated[str | None, typer.Option("--note", help="New note.")] = None,
) -> None:
	"""Change settings of an existing model."""
	changes = {
		"name": name,
		"model_id": model_id,
		"url": url,
		"api_key": api_key,
		"provider": provider,
		"temperature": temperature,
		"max_output_tokens": max_output_tokens,
		"context_length": context_length,
		"system_prompt": system_prompt,
		"note": note,
	}
	changes = {key: value for key, value in changes.items() if value is not None}
	if not changes:
		exit_with_error("Nothing to update. Pass at least one option, e.g. --api-key.")
		return

	store = _store()
	try:
		model = store.get_model_by_id_or_name(identifier)
		if model is None:
			exit_with_error(f"Model '{identifier}' not found")
			return
		updated = ModelConfig.model_validate({**model.model_dump(), **changes})
		store.update_model(updated)
	except ValidationError as e:
		exit_with_error(f"Invalid model configuration: {e}")
		return
	except ConfigError as e:
		exit_with_error(str(e))
		return

	console.print(f"[green]Updated model '{updated.name}' ({', '.join(sorted(changes))}).[/green]")


@models_cmd.command(name="remove")
@asyncer.runnify
async def remove_command(
	identifier: ModelArg,
	yes: Annotated[bool, typer.Option("--yes", "-y", help="Do not ask for confirmation.")] = False,
) -> None:
	"""Delete a model configuration."""
	store = _store()
	try:
		model = store.get_model_by_id_or_name(identifier)
		if model is None:
			exit_with_error(f"Model '{identifier}' not found")
			return
		if not yes and not await ConsoleInteraction().confirm(f"Delete model '{model.name}'?", default=False):
			console.print("Nothing deleted.")
			return
		settings = store.delete_model(model.id)
	except ConfigError as e:
		exit_with_error(str(e))
		return

	console.print(f"[green]Deleted model '{model.name}'.[/green]")
	if settings.models and settings.default_model is None:
		show_warning("The default model was deleted. Choose a new one with: gitgen models default <model>")


@models_cmd.command(name="default")
def default_command(identifier: ModelArg) -> None:
	"""Set the default model."""
	try:
		settings = _store().set_default_model(identifier)
	except ConfigError as e:
		exit_with_error(str(e))
		return
	default = settings.default_model
	console.print(f"[green]Default model set to '{default.name if default else identifier}'.[/green]")


@alias_cmd.command(name="add")
def alias_add_command(identifier: ModelArg, alias: AliasArg) -> None:
	"""Add an alias to a model."""
	try:
		_store().add_alias(identifier, alias)
	except ValidationError as e:
		exit_with_error(f"Invalid alias: {e}")
		return
	except ConfigError as e:
		exit_with_error(str(e))
		return
	console.print(f"[green]Alias '@{alias.strip().lstrip('@')}' is set on '{identifier}'.[/green]")


@alias_cmd.command(name="remove")
def alias_remove_command(identifier: ModelArg, alias: AliasArg) -> None:
	"""Remove an alias from a model."""
	try:
		_store().remove_alias(identifier, alias)
	except ConfigError as e:
		exit_with_error(str(e))
		return
	console.print(f"Alias '@{alias.strip().lstrip('@')}' is not set on '{identifier}' anymore.")


def register_command(app: typer.Typer) -> None:
	"""Register the models sub-commands with the CLI app."""
	app.add_typer(models_cmd)

