"""Prompt templates for commit message generation."""

from __future__ import annotations

from textwrap import dedent

from gitgen.constants import COMMIT_MESSAGE_MAX_LENGTH

MessageDict = dict[str, str]

ROLE = (
	"You are a software engineer writing Git commit messages. "
	"You will be provided with a 'git diff' of code changes."
)

GUIDELINES = (
	"Generate a single paragraph commit message (no line breaks) that starts with the most important "
	"overview in 1-2 sentences, followed by specific details about what changed. Focus on WHAT changed, "
	"be specific about the actual code changes. Keep it concise but informative. Do not use markdown "
	"formatting or line breaks. IMPORTANT: Use single quotes 'like this' instead of double quotes to "
	"ensure shell compatibility for git commit -m commands."
)

LENGTH_CONSTRAINT = (
	f"CRITICAL: Your response must be {COMMIT_MESSAGE_MAX_LENGTH} characters or less. "
	"This is the final commit message length limit."
)

TRUNCATION_NOTE = (
	"The diff was truncated to fit the context window. Describe the visible changes and do not "
	"speculate about omitted files beyond what their headers show."
)


def build_system_prompt(
	custom_instruction: str | None = None,
	model_system_prompt: str | None = None,
	truncated: bool = False,
) -> str:
	"""
	Build the system prompt sent ahead of the diff.

	Args:
	    custom_instruction: Free-text style instruction from the command line; overrides the guidelines
	    model_system_prompt: Extra standing instructions configured on the model
	    truncated: Whether the diff that follows has been truncated

	Returns:
	    The system prompt text

	"""
	sections = []
	if custom_instruction and custom_instruction.strip():
		sections.append(
			f'<critical-instruction override="all">{custom_instruction.strip().upper()}. Ignore all other '
			"guidelines and fully embody this style in the commit message.</critical-instruction>"
		)
	sections.append(f"<role>{ROLE}</role>")
	sections.append(f"<guidelines>{GUIDELINES}</guidelines>")
	if model_system_prompt and model_system_prompt.strip():
		sections.append(f"<additional-instructions>{model_system_prompt.strip()}</additional-instructions>")
	if truncated:
		sections.append(f"<note>{TRUNCATION_NOTE}</note>")
	sections.append(f"<constraint>{LENGTH_CONSTRAINT}</constraint>")

	body = "\n".join(f"    {section}" for section in sections)
	return dedent("""\
		<prompt>
		{body}
		</prompt>""").format(body=body)


def build_messages(
	diff: str,
	custom_instruction: str | None = None,
	model_system_prompt: str | None = None,
	truncated: bool = False,
) -> list[MessageDict]:
	"""Build the chat messages for one generation request."""
	return [
		{"role": "system", "content": build_system_prompt(custom_instruction, model_system_prompt, truncated)},
		{"role": "user", "content": diff},
	]
