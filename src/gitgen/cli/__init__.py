"""Command-line interface package for GitGen."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from dotenv import load_dotenv
from typer.core import TyperGroup

from gitgen import __version__
from gitgen.utils.log_setup import default_log_file, log_environment_info, setup_logging

from .generate_cmd import register_command as register_generate_command
from .models_cmd import register_command as register_models_command

if TYPE_CHECKING:
	import click

logger = logging.getLogger(__name__)

DEFAULT_COMMAND = "generate"
GLOBAL_FLAGS = frozenset({"--verbose", "-v", "--save-log", "--version", "--help", "-h"})


def load_environment() -> None:
	"""Load ``.env.local``, or failing that ``.env``, from the working directory."""
	env_local = Path(".env.local")
	if env_local.exists():
		load_dotenv(dotenv_path=env_local)
		logger.debug("Loaded environment variables from %s", env_local)
		return
	env_file = Path(".env")
	if env_file.exists():
		load_dotenv(dotenv_path=env_file)
		logger.debug("Loaded environment variables from %s", env_file)


class DefaultCommandGroup(TyperGroup):
	"""
	Routes anything that is not a sub-command to ``generate``.

	``gitgen @fast "mention the migration"`` runs as
	``gitgen generate @fast "mention the migration"``; global flags stay in
	front of the inserted command name.

	"""

	def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
		if "--help" in args[:1] or "-h" in args[:1]:
			return super().parse_args(ctx, args)

		global_args = [arg for arg in args if arg in GLOBAL_FLAGS]
		rest = [arg for arg in args if arg not in GLOBAL_FLAGS]
		if rest and rest[0] in self.commands:
			return super().parse_args(ctx, args)
		if "--help" in global_args or "-h" in global_args:
			# Help for the generate command rather than the whole app
			global_args = [arg for arg in global_args if arg not in ("--help", "-h")]
			rest = [*rest, "--help"]
		return super().parse_args(ctx, [*global_args, DEFAULT_COMMAND, *rest])


app = typer.Typer(
	cls=DefaultCommandGroup,
	help=f"GitGen - AI-generated commit messages from your git diff\n\nVersion: {__version__}",
	context_settings={"help_option_names": ["-h", "--help"]},
)


def _version_callback(value: bool) -> None:
	if value:
		typer.echo(f"GitGen version: {__version__}")
		raise typer.Exit


@app.callback()
def global_options(
	ctx: typer.Context,
	is_verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable verbose logging.")] = False,
	is_output_log: Annotated[
		bool,
		typer.Option("--save-log", help="Also write a debug log file to the user log directory."),
	] = False,
	_version: Annotated[
		bool | None,
		typer.Option("--version", help="Show version and exit.", callback=_version_callback, is_eager=True),
	] = None,
) -> None:
	"""Global CLI options and logging setup."""
	ctx.meta["is_verbose"] = is_verbose
	ctx.meta["is_output_log"] = is_output_log

	setup_logging(is_verbose=is_verbose, log_file_path=default_log_file() if is_output_log else None)
	load_environment()
	if is_verbose or is_output_log:
		log_environment_info()


register_generate_command(app)
register_models_command(app)


def main() -> int:
	"""Run the CLI application."""
	return app()


if __name__ == "__main__":
	sys.exit(main())
