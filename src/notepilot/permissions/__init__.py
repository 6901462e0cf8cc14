"""Human approval of sensitive tool calls."""

from notepilot.permissions.approval import (
    REJECTED_BY_USER,
    ApprovalDecision,
    ApprovalGate,
    ApprovalSource,
    QueuedApprovalSource,
    describe_tool_call,
)

__all__ = [
    "REJECTED_BY_USER",
    "ApprovalDecision",
    "ApprovalGate",
    "ApprovalSource",
    "QueuedApprovalSource",
    "describe_tool_call",
]
