"""Configuration types for notepilot."""

from __future__ import annotations

from dataclasses import dataclass, field

DEFAULT_MAX_ITERATIONS = 50
DEFAULT_MAX_PROTOCOL_VIOLATIONS = 3


@dataclass(slots=True)
class LoopConfig:
    """Configuration for a single AgentLoop."""

    max_iterations: int = DEFAULT_MAX_ITERATIONS
    # Consecutive turns with neither a tool call nor a completion before failing.
    max_protocol_violations: int = DEFAULT_MAX_PROTOCOL_VIOLATIONS
    tool_timeout: float | None = None  # seconds; None means unbounded
    auto_approve: frozenset[str] = field(default_factory=frozenset)
    system_prompt: str | None = None
