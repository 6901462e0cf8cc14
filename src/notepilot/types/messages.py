"""Conversation records: messages, tool calls and tool outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Role(Enum):
    """Who produced a message."""

    USER = "user"
    ASSISTANT = "assistant"
    TOOL_RESULT = "tool-result"


class SourceFormat(Enum):
    """Surface syntax a tool call arrived in."""

    TAGGED = "tagged-markup"
    STRUCTURED = "structured-call"


@dataclass(frozen=True, slots=True)
class Message:
    """One immutable entry in the conversation history."""

    role: Role
    content: str
    index: int
    call_id: str | None = None
    is_error: bool = False
    kind: str = "text"  # "text", "completion", "corrective"


@dataclass(frozen=True, slots=True)
class ToolCall:
    """A parsed tool invocation."""

    name: str
    parameters: dict[str, Any] = field(default_factory=dict)
    call_id: str = ""
    source_format: SourceFormat = SourceFormat.TAGGED
    raw: str = ""


@dataclass(frozen=True, slots=True)
class ToolOutcome:
    """Result of executing (or refusing) exactly one ToolCall."""

    call_id: str
    tool_name: str
    succeeded: bool
    payload: str = ""
    error_detail: str = ""

    @classmethod
    def ok(cls, call: ToolCall, payload: str) -> ToolOutcome:
        return cls(call_id=call.call_id, tool_name=call.name, succeeded=True, payload=payload)

    @classmethod
    def fail(cls, call: ToolCall, detail: str) -> ToolOutcome:
        return cls(
            call_id=call.call_id, tool_name=call.name,
            succeeded=False, error_detail=detail,
        )

    @property
    def text(self) -> str:
        return self.payload if self.succeeded else self.error_detail
