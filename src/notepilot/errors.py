"""Error taxonomy for the orchestration core.

Tool-level errors are folded into the conversation as failed tool results.
Only loop-level problems (repeated protocol violations, cancellation) end a
task, and they do so as a terminal status rather than a raised exception.
"""

from __future__ import annotations


class NotepilotError(Exception):
    """Base class for all notepilot errors."""


class ParseAmbiguity(NotepilotError):
    """A tag was still open when the stream ended."""


class UnknownToolError(NotepilotError):
    """A tool name is not present in the registry."""

    def __init__(self, name: str, available: list[str] | None = None) -> None:
        self.name = name
        self.available = sorted(available or [])
        msg = f"Unknown tool: '{name}'."
        if self.available:
            msg += f" Available tools: {', '.join(self.available)}"
        super().__init__(msg)


class ValidationError(NotepilotError):
    """Parameters are missing or do not match the tool schema."""

    def __init__(self, tool_name: str, problems: list[str]) -> None:
        self.tool_name = tool_name
        self.problems = list(problems)
        super().__init__(
            f"Invalid parameters for '{tool_name}': " + "; ".join(self.problems),
        )


class ExecutionError(NotepilotError):
    """Raised by tool handlers when the underlying operation fails."""


class ApprovalDenied(NotepilotError):
    """The user rejected a tool call."""


class ProtocolViolation(NotepilotError):
    """A model turn carried neither a tool call nor a completion."""


class TaskCancelled(NotepilotError):
    """The task was cancelled by its caller."""


class InvalidTransitionError(NotepilotError):
    """A task status change is not allowed by the state machine."""


class DuplicateToolError(NotepilotError):
    """A tool with the same name is already registered."""


class RegistryFrozenError(NotepilotError):
    """The registry no longer accepts registrations."""


class ConfigError(NotepilotError):
    """A configuration value could not be interpreted."""
