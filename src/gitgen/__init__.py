"""gitgen - commit messages for uncommitted git changes, written by an LLM."""

__version__ = "0.4.0"
