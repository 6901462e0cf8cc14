"""Task status and the per-task state record."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from notepilot.types.messages import ToolCall


class TaskStatus(Enum):
    """Lifecycle of one task driven by an AgentLoop."""

    RUNNING = "running"
    AWAITING_APPROVAL = "awaiting-approval"
    EXECUTING_TOOL = "executing-tool"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({
    TaskStatus.COMPLETED,
    TaskStatus.CANCELLED,
    TaskStatus.FAILED,
})

# Allowed status changes. Terminal statuses have no outgoing edges.
TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.RUNNING: frozenset({
        TaskStatus.AWAITING_APPROVAL,
        TaskStatus.EXECUTING_TOOL,
        TaskStatus.COMPLETED,
        TaskStatus.CANCELLED,
        TaskStatus.FAILED,
    }),
    TaskStatus.AWAITING_APPROVAL: frozenset({
        TaskStatus.RUNNING,
        TaskStatus.EXECUTING_TOOL,
        TaskStatus.CANCELLED,
        TaskStatus.FAILED,
    }),
    TaskStatus.EXECUTING_TOOL: frozenset({
        TaskStatus.RUNNING,
        TaskStatus.CANCELLED,
        TaskStatus.FAILED,
    }),
    TaskStatus.COMPLETED: frozenset(),
    TaskStatus.CANCELLED: frozenset(),
    TaskStatus.FAILED: frozenset(),
}


@dataclass(slots=True)
class TaskState:
    """Mutable state of a single task. Written only by the agent loop."""

    status: TaskStatus = TaskStatus.RUNNING
    pending_approval: ToolCall | None = None
    iteration_count: int = 0
    consecutive_violations: int = 0
    result_text: str | None = None
    failure_reason: str | None = None
    error: Exception | None = None  # what ended the task, if not completion

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal
