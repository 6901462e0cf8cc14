"""Shared types for notepilot."""

from notepilot.types.config import LoopConfig
from notepilot.types.events import (
    ApprovalRequested,
    CompletionDetected,
    LoopEvent,
    ParseEvent,
    PlainText,
    StatusChanged,
    ThinkingBlock,
    ToolCallComplete,
    ToolCallDetected,
    ToolOutcomeEvent,
)
from notepilot.types.messages import Message, Role, SourceFormat, ToolCall, ToolOutcome
from notepilot.types.providers import ModelTurnProvider, StructuredCall, TurnChunk
from notepilot.types.task import TaskState, TaskStatus
from notepilot.types.tools import RegisteredTool, ToolDef, ToolHandler, ToolParam

__all__ = [
    "ApprovalRequested",
    "CompletionDetected",
    "LoopConfig",
    "LoopEvent",
    "Message",
    "ModelTurnProvider",
    "ParseEvent",
    "PlainText",
    "RegisteredTool",
    "Role",
    "SourceFormat",
    "StatusChanged",
    "StructuredCall",
    "TaskState",
    "TaskStatus",
    "ThinkingBlock",
    "ToolCall",
    "ToolCallComplete",
    "ToolCallDetected",
    "ToolDef",
    "ToolHandler",
    "ToolOutcome",
    "ToolOutcomeEvent",
    "ToolParam",
    "TurnChunk",
]
