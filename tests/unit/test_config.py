"""Tests for notepilot.core.config — TOML and environment configuration."""

from __future__ import annotations

from pathlib import Path

import pytest

from notepilot.core.config import build_loop_config, load_env_config, load_toml_config
from notepilot.errors import ConfigError
from notepilot.types.config import LoopConfig

_ENV_VARS = (
    "NOTEPILOT_MAX_ITERATIONS",
    "NOTEPILOT_MAX_PROTOCOL_VIOLATIONS",
    "NOTEPILOT_TOOL_TIMEOUT",
    "NOTEPILOT_AUTO_APPROVE",
)


@pytest.fixture(autouse=True)
def _isolated(tmp_path: Path, monkeypatch):
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)


def _write_toml(root: Path, body: str) -> None:
    (root / ".notepilot").mkdir(parents=True, exist_ok=True)
    (root / ".notepilot" / "config.toml").write_text(body)


class TestConfig:
    def test_defaults(self):
        config = build_loop_config()
        assert config == LoopConfig()
        assert config.max_iterations == 50
        assert config.max_protocol_violations == 3
        assert config.tool_timeout is None

    def test_toml(self, tmp_path: Path):
        project = tmp_path / "project"
        _write_toml(project, '[loop]\nmax_iterations = 10\nauto_approve = ["create_note"]\n')
        assert load_toml_config(str(project))["max_iterations"] == 10
        config = build_loop_config(str(project))
        assert config.max_iterations == 10
        assert config.auto_approve == frozenset({"create_note"})

    def test_env_overrides_toml(self, tmp_path: Path, monkeypatch):
        _write_toml(tmp_path, "[loop]\nmax_iterations = 10\n")
        monkeypatch.setenv("NOTEPILOT_MAX_ITERATIONS", "7")
        monkeypatch.setenv("NOTEPILOT_TOOL_TIMEOUT", "2.5")
        monkeypatch.setenv("NOTEPILOT_AUTO_APPROVE", "create_note, delete_note")
        assert load_env_config()["auto_approve"] == ["create_note", "delete_note"]
        config = build_loop_config()
        assert config.max_iterations == 7
        assert config.tool_timeout == 2.5
        assert config.auto_approve == frozenset({"create_note", "delete_note"})

    def test_explicit_overrides_win(self, monkeypatch):
        monkeypatch.setenv("NOTEPILOT_MAX_PROTOCOL_VIOLATIONS", "5")
        config = build_loop_config(max_protocol_violations=2, tool_timeout=None)
        assert config.max_protocol_violations == 2
        assert config.tool_timeout is None

    def test_timeout_none_spellings(self, monkeypatch):
        monkeypatch.setenv("NOTEPILOT_TOOL_TIMEOUT", "none")
        assert build_loop_config().tool_timeout is None

    def test_invalid_integer(self, monkeypatch):
        monkeypatch.setenv("NOTEPILOT_MAX_ITERATIONS", "lots")
        with pytest.raises(ConfigError, match="max_iterations must be an integer"):
            build_loop_config()

    def test_non_positive_integer(self):
        with pytest.raises(ConfigError, match="at least 1"):
            build_loop_config(max_iterations=0)

    def test_broken_toml_is_ignored(self, tmp_path: Path):
        _write_toml(tmp_path, "[loop\nmax_iterations = ")
        assert load_toml_config() == {}
