"""Conversation history and task status for a single task."""

from __future__ import annotations

import html
import logging

from notepilot.errors import InvalidTransitionError
from notepilot.types.messages import Message, Role, ToolCall, ToolOutcome
from notepilot.types.task import TRANSITIONS, TaskState, TaskStatus

logger = logging.getLogger(__name__)


def render_outcome(outcome: ToolOutcome) -> str:
    """Render a tool outcome as the tagged text the model reads back."""
    tag = "tool_result" if outcome.succeeded else "tool_error"
    name = html.escape(outcome.tool_name, quote=True)
    call_id = html.escape(outcome.call_id, quote=True)
    return f'<{tag} name="{name}" call_id="{call_id}">\n{outcome.text}\n</{tag}>'


class StateManager:
    """Sole owner and writer of one task's messages and status.

    Messages are immutable once appended, so readers may take snapshots of
    ``history`` at any time.
    """

    def __init__(self, state: TaskState | None = None) -> None:
        self._messages: list[Message] = []
        self._state = state or TaskState()

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def append(
        self,
        role: Role,
        content: str,
        *,
        call_id: str | None = None,
        is_error: bool = False,
        kind: str = "text",
    ) -> Message:
        msg = Message(
            role=role,
            content=content,
            index=len(self._messages),
            call_id=call_id,
            is_error=is_error,
            kind=kind,
        )
        self._messages.append(msg)
        return msg

    def fold_outcome(self, outcome: ToolOutcome) -> Message:
        """Append a tool-result message carrying *outcome*."""
        return self.append(
            Role.TOOL_RESULT,
            render_outcome(outcome),
            call_id=outcome.call_id,
            is_error=not outcome.succeeded,
        )

    @property
    def history(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def to_chat_history(self) -> list[dict[str, str]]:
        """Provider-agnostic history. Tool results are presented to the model as user turns."""
        chat: list[dict[str, str]] = []
        for msg in self._messages:
            role = "assistant" if msg.role is Role.ASSISTANT else "user"
            chat.append({"role": role, "content": msg.content})
        return chat

    # ------------------------------------------------------------------
    # Task state
    # ------------------------------------------------------------------

    @property
    def state(self) -> TaskState:
        return self._state

    @property
    def status(self) -> TaskStatus:
        return self._state.status

    def transition(self, new: TaskStatus, reason: str | None = None) -> TaskStatus:
        """Move to *new*, returning the previous status."""
        old = self._state.status
        if new is old:
            return old
        if new not in TRANSITIONS[old]:
            raise InvalidTransitionError(f"Cannot move task from {old.value} to {new.value}")
        self._state.status = new
        if new is TaskStatus.FAILED:
            self._state.failure_reason = reason
        if new is not TaskStatus.AWAITING_APPROVAL:
            self.clear_pending()
        logger.info("Task status %s -> %s%s", old.value, new.value, f" ({reason})" if reason else "")
        return old

    def set_pending(self, call: ToolCall) -> None:
        self._state.pending_approval = call

    def clear_pending(self) -> ToolCall | None:
        call, self._state.pending_approval = self._state.pending_approval, None
        return call

    def record_completion(self, result: str) -> None:
        self._state.result_text = result

    def next_iteration(self) -> int:
        self._state.iteration_count += 1
        return self._state.iteration_count
