"""Global test fixtures and configuration."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import pytest

from gitgen.config import AppSettings, ModelConfig, SettingsStore


class ScriptedInteraction:
	"""Interaction double that replays scripted answers and records every question."""

	def __init__(self, confirms: Sequence[bool] = (), selection: int | None = None) -> None:
		self.confirms = list(confirms)
		self.selection = selection
		self.confirm_prompts: list[str] = []
		self.select_prompts: list[tuple[str, tuple[ModelConfig, ...]]] = []

	async def confirm(self, message: str, default: bool = False) -> bool:
		self.confirm_prompts.append(message)
		if not self.confirms:
			return default
		return self.confirms.pop(0)

	async def select(self, message: str, candidates: Sequence[ModelConfig]) -> ModelConfig | None:
		self.select_prompts.append((message, tuple(candidates)))
		if self.selection is None:
			return None
		return candidates[self.selection]


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
	"""Keep every test away from the real settings file, usage log and env overrides."""
	monkeypatch.setenv("GITGEN_SETTINGS_FILE", str(tmp_path / "home" / "settings.yml"))
	monkeypatch.setenv("GITGEN_USAGE_DIR", str(tmp_path / "home" / "usage"))
	monkeypatch.delenv("GITGEN_API_KEY", raising=False)
	for field_name in AppSettings.model_fields:
		monkeypatch.delenv(f"GITGEN_SETTINGS_{field_name.upper()}", raising=False)


@pytest.fixture
def settings_path(tmp_path: Path) -> Path:
	"""Location of a settings file that does not exist yet."""
	return tmp_path / "config" / "settings.yml"


@pytest.fixture
def store(settings_path: Path) -> SettingsStore:
	"""A settings store backed by a temporary file."""
	return SettingsStore(settings_path)


@pytest.fixture
def make_model() -> Callable[..., ModelConfig]:
	"""Factory for model configurations with sensible test defaults."""

	def _make(name: str = "gpt4", **overrides: Any) -> ModelConfig:  # noqa: ANN401
		data: dict[str, Any] = {
			"name": name,
			"url": "https://api.example.com/v1/chat/completions",
			"model_id": f"{name.lower()}-model",
			"api_key": "sk-test-key-1234567890",
			**overrides,
		}
		return ModelConfig.model_validate(data)

	return _make


@pytest.fixture
def scripted_interaction() -> type[ScriptedInteraction]:
	"""The scripted Interaction double, to be constructed with the answers a test needs."""
	return ScriptedInteraction


SAMPLE_DIFF = """\
diff --git a/src/app.py b/src/app.py
index 1111111..2222222 100644
--- a/src/app.py
+++ b/src/app.py
@@ -1,3 +1,4 @@
 import os
+import sys
 
 def main():
"""


@pytest.fixture
def sample_diff() -> str:
	"""A small one-file diff."""
	return SAMPLE_DIFF
