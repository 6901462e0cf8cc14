"""Events produced by the tag parser and the agent loop."""

from __future__ import annotations

from dataclasses import dataclass

from notepilot.types.messages import ToolCall, ToolOutcome
from notepilot.types.task import TaskStatus


@dataclass(frozen=True, slots=True)
class PlainText:
    """Text outside of any recognized tag."""

    text: str


@dataclass(frozen=True, slots=True)
class ThinkingBlock:
    """Contents of a <thinking> block. Shown to the user, never dispatched."""

    text: str


@dataclass(frozen=True, slots=True)
class ToolCallDetected:
    """The opening tag of a tool call has been seen."""

    name: str


@dataclass(frozen=True, slots=True)
class ToolCallComplete:
    """A tool call's closing tag has been parsed."""

    call: ToolCall


@dataclass(frozen=True, slots=True)
class CompletionDetected:
    """The model signalled that the task is finished."""

    result: str


ParseEvent = (
    PlainText | ThinkingBlock | ToolCallDetected | ToolCallComplete | CompletionDetected
)


@dataclass(frozen=True, slots=True)
class StatusChanged:
    """Task status moved from one value to another."""

    old: TaskStatus
    new: TaskStatus
    reason: str | None = None


@dataclass(frozen=True, slots=True)
class ApprovalRequested:
    """A tool call is waiting for an external allow/deny decision."""

    call: ToolCall
    description: str


@dataclass(frozen=True, slots=True)
class ToolOutcomeEvent:
    """A tool call produced its outcome."""

    outcome: ToolOutcome


LoopEvent = ParseEvent | StatusChanged | ApprovalRequested | ToolOutcomeEvent
