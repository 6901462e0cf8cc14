"""Configuration loading (TOML, env vars)."""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from notepilot.errors import ConfigError
from notepilot.types.config import LoopConfig

logger = logging.getLogger(__name__)

# Load .env from current directory (and parents), won't override existing env vars
load_dotenv()

_INT_KEYS = ("max_iterations", "max_protocol_violations")


def load_env_config() -> dict[str, Any]:
    """Load loop settings from environment variables."""
    config: dict[str, Any] = {}

    if val := os.environ.get("NOTEPILOT_MAX_ITERATIONS"):
        config["max_iterations"] = val
    if val := os.environ.get("NOTEPILOT_MAX_PROTOCOL_VIOLATIONS"):
        config["max_protocol_violations"] = val
    if val := os.environ.get("NOTEPILOT_TOOL_TIMEOUT"):
        config["tool_timeout"] = val
    if val := os.environ.get("NOTEPILOT_AUTO_APPROVE"):
        config["auto_approve"] = [name.strip() for name in val.split(",") if name.strip()]

    return config


def load_toml_config(cwd: str | None = None) -> dict[str, Any]:
    """Load the ``[loop]`` table from .notepilot/config.toml if it exists."""
    search_dirs = []
    if cwd:
        search_dirs.append(Path(cwd))
    search_dirs.append(Path.cwd())
    search_dirs.append(Path.home())

    for d in search_dirs:
        toml_path = d / ".notepilot" / "config.toml"
        if not toml_path.exists():
            continue
        try:
            with open(toml_path, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as exc:
            logger.warning("Cannot read %s: %s", toml_path, exc)
            continue
        logger.debug("Loaded config from %s", toml_path)
        return dict(data.get("loop", {}))
    return {}


def _parse(values: dict[str, Any]) -> dict[str, Any]:
    parsed: dict[str, Any] = {}
    for key in _INT_KEYS:
        if key in values and values[key] is not None:
            try:
                parsed[key] = int(values[key])
            except (TypeError, ValueError):
                raise ConfigError(f"{key} must be an integer, got {values[key]!r}") from None
            if parsed[key] < 1:
                raise ConfigError(f"{key} must be at least 1")
    if "tool_timeout" in values:
        raw = values["tool_timeout"]
        if raw in (None, "", "none", 0):
            parsed["tool_timeout"] = None
        else:
            try:
                parsed["tool_timeout"] = float(raw)
            except (TypeError, ValueError):
                raise ConfigError(f"tool_timeout must be a number, got {raw!r}") from None
    if "auto_approve" in values:
        raw = values["auto_approve"]
        if isinstance(raw, str):
            raw = [raw]
        parsed["auto_approve"] = frozenset(raw or ())
    if values.get("system_prompt"):
        parsed["system_prompt"] = str(values["system_prompt"])
    return parsed


def build_loop_config(cwd: str | None = None, **overrides: Any) -> LoopConfig:
    """Merge defaults < TOML < environment < explicit overrides."""
    merged: dict[str, Any] = {}
    merged.update(_parse(load_toml_config(cwd)))
    merged.update(_parse(load_env_config()))
    merged.update(_parse({k: v for k, v in overrides.items() if v is not None}))
    return LoopConfig(**merged)
