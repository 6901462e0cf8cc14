"""Round-by-round summaries of a conversation history.

A round starts at each user message the user actually wrote (tool results
and corrective prompts are internal) and collects the thinking, tool calls
and final answer of every assistant turn up to the next round.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from notepilot.core.prompts import PROTOCOL_CORRECTION
from notepilot.parsing.tags import parse_text
from notepilot.types.events import CompletionDetected, ThinkingBlock, ToolCallComplete
from notepilot.types.messages import Message, Role

_TASK_RE = re.compile(r"<task>(.*?)</task>", re.DOTALL)
_CONTEXT_RE = re.compile(r"<(current_note|related_notes)[^>]*>.*?</\1>", re.DOTALL)
_OUTCOME_RE = re.compile(r"<(tool_result|tool_error)\b[^>]*>\n?(.*?)\n?</\1>", re.DOTALL)


@dataclass(slots=True)
class ToolCallSummary:
    name: str
    parameters: dict[str, Any]
    result: str | None = None
    succeeded: bool | None = None


@dataclass(slots=True)
class Round:
    user_text: str
    thinking: list[str] = field(default_factory=list)
    tool_calls: list[ToolCallSummary] = field(default_factory=list)
    final_answer: str = ""

    @property
    def step_count(self) -> int:
        return len(self.thinking) + len(self.tool_calls)


def is_internal(msg: Message) -> bool:
    """True for user-role messages the user did not write."""
    if msg.role is Role.TOOL_RESULT or msg.kind == "corrective":
        return True
    if msg.content == PROTOCOL_CORRECTION:
        return True
    return "<tool_result" in msg.content or "<tool_error" in msg.content


def clean_user_message(content: str) -> str:
    """Strip the task wrapper and attached note context."""
    text = _TASK_RE.sub(lambda m: m.group(1), content)
    text = _CONTEXT_RE.sub("", text)
    return text.strip()


def _outcome_text(content: str) -> tuple[str, bool]:
    match = _OUTCOME_RE.search(content)
    if match is None:
        return content.strip(), True
    return match.group(2).strip(), match.group(1) == "tool_result"


def summarize_rounds(history: Iterable[Message]) -> list[Round]:
    rounds: list[Round] = []
    current: Round | None = None
    awaiting: list[ToolCallSummary] = []  # calls of the last assistant turn without results

    for msg in history:
        if msg.role is Role.USER and not is_internal(msg):
            text = clean_user_message(msg.content)
            if not text:
                continue
            current = Round(user_text=text)
            rounds.append(current)
            awaiting = []
        elif current is None:
            continue
        elif msg.role is Role.ASSISTANT:
            awaiting = []
            for event in parse_text(msg.content):
                if isinstance(event, ThinkingBlock):
                    current.thinking.append(event.text)
                elif isinstance(event, ToolCallComplete):
                    summary = ToolCallSummary(event.call.name, dict(event.call.parameters))
                    current.tool_calls.append(summary)
                    awaiting.append(summary)
                elif isinstance(event, CompletionDetected) and event.result:
                    current.final_answer = event.result
        elif msg.role is Role.TOOL_RESULT and awaiting:
            summary = awaiting.pop(0)
            summary.result, summary.succeeded = _outcome_text(msg.content)

    return [r for r in rounds if r.step_count or r.final_answer]


def load_history(path: str | Path) -> list[Message]:
    """Read a JSONL history file (one ``{"role", "content"}`` object per line)."""
    messages: list[Message] = []
    with open(path, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            entry = json.loads(line)
            messages.append(Message(
                role=Role(entry["role"]),
                content=entry.get("content", ""),
                index=len(messages),
                call_id=entry.get("call_id"),
                is_error=bool(entry.get("is_error", False)),
                kind=entry.get("kind", "text"),
            ))
    return messages


def dump_history(messages: Iterable[Message], path: str | Path) -> None:
    """Write messages in the format :func:`load_history` reads."""
    with open(path, "w", encoding="utf-8") as f:
        for msg in messages:
            entry: dict[str, Any] = {"role": msg.role.value, "content": msg.content}
            if msg.call_id:
                entry["call_id"] = msg.call_id
            if msg.is_error:
                entry["is_error"] = True
            if msg.kind != "text":
                entry["kind"] = msg.kind
            f.write(json.dumps(entry, ensure_ascii=False) + "\n")
