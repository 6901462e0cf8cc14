"""Approval gate for tool calls that need human consent."""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Protocol, runtime_checkable

import anyio
from anyio.abc import ObjectReceiveStream, ObjectSendStream

from notepilot.core.cancel import CancelToken
from notepilot.errors import ApprovalDenied
from notepilot.types.messages import ToolCall

logger = logging.getLogger(__name__)

REJECTED_BY_USER = "Tool call rejected by user."


class ApprovalDecision(Enum):
    """Outcome of an approval request."""

    ALLOW = "allow"
    DENY = "deny"


@runtime_checkable
class ApprovalSource(Protocol):
    """Protocol for the external actor that decides on tool calls."""

    async def request_approval(self, call: ToolCall, description: str) -> ApprovalDecision:
        """Return ALLOW or DENY (or raise ApprovalDenied). May wait indefinitely."""
        ...


def describe_tool_call(call: ToolCall) -> str:
    """Build a human-readable one-line description of a tool call."""
    args = call.parameters
    name = call.name
    if name == "create_note" and "path" in args:
        content = str(args.get("content", ""))
        lines = content.count("\n") + 1 if content else 0
        return f"Create {args['path']} ({lines} lines)"
    if name == "edit_note" and "path" in args:
        return f"Edit {args['path']}"
    if name == "delete_note" and "path" in args:
        return f"Delete {args['path']}"
    if name == "create_folder" and "path" in args:
        return f"Create folder {args['path']}"
    if name == "move_file" and "from" in args:
        return f"Move {args['from']} -> {args.get('to', '?')}"
    if name == "rename_file" and "path" in args:
        return f"Rename {args['path']} -> {args.get('new_name', '?')}"
    if name == "add_database_row" and "database_id" in args:
        return f"Add row to database {args['database_id']}"
    # Fallback: tool name + truncated args
    args_str = json.dumps(args, default=str, ensure_ascii=False)
    if len(args_str) > 80:
        args_str = args_str[:77] + "..."
    return f"{name}({args_str})"


class ApprovalGate:
    """Suspends a tool call until an allow/deny decision or cancellation.

    Without a source every approval-requiring call is denied. Tools named
    in *auto_approve* skip the gate.
    """

    def __init__(
        self,
        source: ApprovalSource | None = None,
        auto_approve: frozenset[str] = frozenset(),
    ) -> None:
        self._source = source
        self._auto_approve = frozenset(auto_approve)

    def requires_approval(self, tool_name: str, flagged: bool) -> bool:
        return flagged and tool_name not in self._auto_approve

    async def request_approval(
        self, call: ToolCall, cancel: CancelToken | None = None,
    ) -> ApprovalDecision | None:
        """Wait for a decision. Returns None if cancelled while waiting."""
        if self._source is None:
            logger.warning("No approval source configured; denying %s", call.name)
            return ApprovalDecision.DENY
        description = describe_tool_call(call)
        pending = self._ask(call, description)
        if cancel is None:
            return await pending
        cancelled, decision = await cancel.race(pending)
        if cancelled:
            logger.info("Approval for %s (%s) abandoned: task cancelled", call.name, call.call_id)
            return None
        return decision

    async def _ask(self, call: ToolCall, description: str) -> ApprovalDecision:
        assert self._source is not None
        try:
            decision = await self._source.request_approval(call, description)
        except ApprovalDenied:
            return ApprovalDecision.DENY
        except Exception as exc:  # noqa: BLE001
            logger.warning("Approval source failed for %s: %s", call.name, exc)
            return ApprovalDecision.DENY
        if not isinstance(decision, ApprovalDecision):
            decision = ApprovalDecision.ALLOW if decision is True else ApprovalDecision.DENY
        return decision


class QueuedApprovalSource:
    """Approval source fed by the surrounding application.

    Pending requests are published on ``requests``; decisions are pushed
    with :meth:`allow` / :meth:`deny`. Uses anyio memory object streams.
    """

    def __init__(self, buffer_size: int = 16) -> None:
        send: ObjectSendStream[tuple[str, ApprovalDecision]]
        recv: ObjectReceiveStream[tuple[str, ApprovalDecision]]
        send, recv = anyio.create_memory_object_stream[tuple[str, ApprovalDecision]](
            max_buffer_size=buffer_size,
        )
        self._send = send
        self._recv = recv
        self._early: dict[str, ApprovalDecision] = {}
        self.requests: list[tuple[ToolCall, str]] = []

    def allow(self, call_id: str) -> None:
        self._send.send_nowait((call_id, ApprovalDecision.ALLOW))

    def deny(self, call_id: str) -> None:
        self._send.send_nowait((call_id, ApprovalDecision.DENY))

    async def request_approval(self, call: ToolCall, description: str) -> ApprovalDecision:
        self.requests.append((call, description))
        if call.call_id in self._early:
            return self._early.pop(call.call_id)
        while True:
            call_id, decision = await self._recv.receive()
            if call_id == call.call_id:
                return decision
            # Decision for a call that has not been requested yet.
            self._early[call_id] = decision

    async def close(self) -> None:
        await self._send.aclose()
        await self._recv.aclose()
