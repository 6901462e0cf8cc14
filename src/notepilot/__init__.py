"""notepilot — tool-orchestration core for a note-taking agent.

Usage:
    import notepilot

    registry = notepilot.ToolRegistry()
    notepilot.register_note_tools(registry, handlers)
    registry.freeze()

    loop = notepilot.AgentLoop(provider, registry, approval=source)
    async for event in loop.run("Tidy up my reading list"):
        match event:
            case notepilot.PlainText(text=t):
                print(t, end="")
            case notepilot.CompletionDetected(result=r):
                print(f"Done: {r}")
"""

from notepilot.core.cancel import CancelToken
from notepilot.core.loop import AgentLoop, LoopObserver
from notepilot.core.state import StateManager
from notepilot.errors import (
    ApprovalDenied,
    ExecutionError,
    NotepilotError,
    ParseAmbiguity,
    ProtocolViolation,
    TaskCancelled,
    UnknownToolError,
    ValidationError,
)
from notepilot.parsing.tags import TagParser
from notepilot.permissions.approval import (
    ApprovalDecision,
    ApprovalGate,
    ApprovalSource,
    QueuedApprovalSource,
)
from notepilot.tools.catalog import register_note_tools
from notepilot.tools.executor import ToolExecutor
from notepilot.tools.registry import ToolRegistry
from notepilot.types.config import LoopConfig
from notepilot.types.events import (
    ApprovalRequested,
    CompletionDetected,
    PlainText,
    StatusChanged,
    ThinkingBlock,
    ToolCallComplete,
    ToolCallDetected,
    ToolOutcomeEvent,
)
from notepilot.types.messages import Message, Role, ToolCall, ToolOutcome
from notepilot.types.providers import StructuredCall, TurnChunk
from notepilot.types.task import TaskState, TaskStatus
from notepilot.types.tools import ToolDef, ToolParam

__version__ = "0.1.0"

__all__ = [
    # Core API
    "AgentLoop",
    "CancelToken",
    "LoopConfig",
    "LoopObserver",
    "StateManager",
    "TagParser",
    # Tools
    "ToolDef",
    "ToolExecutor",
    "ToolParam",
    "ToolRegistry",
    "register_note_tools",
    # Approval
    "ApprovalDecision",
    "ApprovalGate",
    "ApprovalSource",
    "QueuedApprovalSource",
    # Records
    "Message",
    "Role",
    "StructuredCall",
    "TaskState",
    "TaskStatus",
    "ToolCall",
    "ToolOutcome",
    "TurnChunk",
    # Events
    "ApprovalRequested",
    "CompletionDetected",
    "PlainText",
    "StatusChanged",
    "ThinkingBlock",
    "ToolCallComplete",
    "ToolCallDetected",
    "ToolOutcomeEvent",
    # Errors
    "ApprovalDenied",
    "ExecutionError",
    "NotepilotError",
    "ParseAmbiguity",
    "ProtocolViolation",
    "TaskCancelled",
    "UnknownToolError",
    "ValidationError",
]
