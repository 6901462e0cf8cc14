"""The core agent loop — orchestrates model turns, tag parsing and tools."""

from __future__ import annotations

import inspect
import itertools
import logging
from collections.abc import AsyncIterator, Iterable
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from notepilot.core.cancel import CancelToken
from notepilot.core.prompts import PROTOCOL_CORRECTION, build_system_prompt, wrap_task
from notepilot.core.state import StateManager
from notepilot.errors import NotepilotError, ProtocolViolation, TaskCancelled
from notepilot.parsing.structured import normalize_call, to_tool_call
from notepilot.parsing.tags import COMPLETION_TAG, TagParser
from notepilot.permissions.approval import (
    REJECTED_BY_USER,
    ApprovalDecision,
    ApprovalGate,
    ApprovalSource,
    describe_tool_call,
)
from notepilot.tools.executor import ToolExecutor
from notepilot.tools.registry import ToolRegistry
from notepilot.types.config import LoopConfig
from notepilot.types.events import (
    ApprovalRequested,
    CompletionDetected,
    LoopEvent,
    ParseEvent,
    StatusChanged,
    ToolCallComplete,
    ToolCallDetected,
    ToolOutcomeEvent,
)
from notepilot.types.messages import Message, Role, ToolCall, ToolOutcome
from notepilot.types.providers import ModelTurnProvider, TurnChunk
from notepilot.types.task import TaskState, TaskStatus

logger = logging.getLogger(__name__)

_END = object()


@runtime_checkable
class LoopObserver(Protocol):
    """Display sink. Receives every event; cannot influence control flow."""

    def on_event(self, event: LoopEvent) -> None:
        ...


@dataclass(slots=True)
class _Turn:
    """What one model turn produced."""

    content: str = ""
    calls: list[ToolCall] = field(default_factory=list)
    completion: str | None = None
    cancelled: bool = False

    def add_text(self, text: str) -> None:
        self.content += text

    def add_markup(self, markup: str) -> None:
        if self.content and not self.content.endswith("\n"):
            self.content += "\n"
        self.content += markup

    def collect(self, event: ParseEvent) -> None:
        if isinstance(event, ToolCallComplete):
            self.calls.append(event.call)
        elif isinstance(event, CompletionDetected):
            self.completion = event.result


async def _next_chunk(iterator: Any) -> Any:
    try:
        return await iterator.__anext__()
    except StopAsyncIteration:
        return _END


class AgentLoop:
    """The core agent loop.

    Orchestrates: task -> model turn -> tag parser -> approval -> tools ->
    history -> model turn -> ... until the task completes, fails or is
    cancelled. One instance drives exactly one task.

    Usage::

        loop = AgentLoop(provider, registry, approval=source)
        async for event in loop.run("Summarize ideas.md"):
            ...
    """

    def __init__(
        self,
        provider: ModelTurnProvider,
        registry: ToolRegistry,
        *,
        config: LoopConfig | None = None,
        approval: ApprovalGate | ApprovalSource | None = None,
        observers: Iterable[LoopObserver] = (),
        cancel: CancelToken | None = None,
        state: StateManager | None = None,
    ) -> None:
        self._provider = provider
        self._registry = registry
        self._config = config or LoopConfig()
        self._executor = ToolExecutor(registry)
        if isinstance(approval, ApprovalGate):
            self._gate = approval
        else:
            self._gate = ApprovalGate(approval, auto_approve=self._config.auto_approve)
        self._observers = list(observers)
        self._cancel = cancel or CancelToken()
        self._state = state or StateManager()
        self._ids = itertools.count(1)
        if self._config.system_prompt:
            self._system = self._config.system_prompt
        else:
            self._system = build_system_prompt(registry.definitions())

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def state(self) -> TaskState:
        return self._state.state

    @property
    def history(self) -> tuple[Message, ...]:
        return self._state.history

    @property
    def cancel_token(self) -> CancelToken:
        return self._cancel

    def cancel(self, reason: str | None = None) -> None:
        """Request cancellation. Takes effect at the next suspend point."""
        self._cancel.cancel(reason)

    def add_observer(self, observer: LoopObserver) -> None:
        self._observers.append(observer)

    async def run(self, task: str) -> AsyncIterator[LoopEvent]:
        """Run the task to a terminal status. Yields every event as it happens."""
        if self._state.status.is_terminal:
            logger.warning("Task already %s; not running again", self._state.status.value)
            return
        self._state.append(Role.USER, wrap_task(task))
        async for event in self._iterate():
            self._notify(event)
            yield event

    async def run_to_end(self, task: str) -> TaskState:
        """Run the task, discarding events, and return the final state."""
        async for _ in self.run(task):
            pass
        return self.state

    # ------------------------------------------------------------------
    # Iterations
    # ------------------------------------------------------------------

    async def _iterate(self) -> AsyncIterator[LoopEvent]:
        while not self._state.status.is_terminal:
            if self._cancel.cancelled:
                yield self._cancelled()
                return
            if self.state.iteration_count >= self._config.max_iterations:
                yield self._fail(NotepilotError(
                    f"Reached max iterations ({self._config.max_iterations})",
                ))
                return

            iteration = self._state.next_iteration()
            logger.debug("Iteration %d", iteration)

            turn = _Turn()
            try:
                async for event in self._stream_turn(turn):
                    yield event
            except Exception as exc:  # noqa: BLE001
                logger.error("Model turn failed: %s: %s", type(exc).__name__, exc)
                yield self._fail(exc, f"Model request failed: {exc}")
                return

            if turn.cancelled:
                # Partial turn is discarded: nothing appended, nothing dispatched.
                yield self._cancelled()
                return

            if turn.content:
                self._state.append(
                    Role.ASSISTANT,
                    turn.content,
                    kind="completion" if turn.completion is not None else "text",
                )

            for call in turn.calls:
                async for event in self._dispatch(call):
                    yield event
                if self._state.status.is_terminal:
                    return

            if turn.completion is not None:
                self._state.record_completion(turn.completion)
                yield self._set_status(TaskStatus.COMPLETED)
                return

            if turn.calls:
                self.state.consecutive_violations = 0
                continue

            self.state.consecutive_violations += 1
            violations = self.state.consecutive_violations
            logger.warning(
                "Turn %d had no tool call or completion (%d/%d)",
                iteration, violations, self._config.max_protocol_violations,
            )
            if violations >= self._config.max_protocol_violations:
                yield self._fail(ProtocolViolation(
                    f"{violations} consecutive responses without a tool call or completion",
                ))
                return
            self._state.append(Role.USER, PROTOCOL_CORRECTION, kind="corrective")

    async def _stream_turn(self, turn: _Turn) -> AsyncIterator[ParseEvent]:
        parser = TagParser(id_factory=self._new_call_id)
        history = [{"role": "system", "content": self._system}]
        history.extend(self._state.to_chat_history())

        stream = self._provider.request_turn(history)
        if inspect.isawaitable(stream):
            stream = await stream
        iterator = stream.__aiter__()
        try:
            while True:
                cancelled, chunk = await self._cancel.race(_next_chunk(iterator))
                if cancelled:
                    turn.cancelled = True
                    return
                if chunk is _END:
                    break
                for event in self._parse_chunk(parser, turn, chunk):
                    turn.collect(event)
                    yield event
            for event in parser.finish():
                turn.collect(event)
                yield event
        finally:
            aclose = getattr(iterator, "aclose", None)
            if aclose is not None:
                await aclose()

    def _parse_chunk(self, parser: TagParser, turn: _Turn, chunk: Any) -> list[ParseEvent]:
        if isinstance(chunk, str):
            turn.add_text(chunk)
            return parser.feed(chunk)
        if not isinstance(chunk, TurnChunk):
            raise TypeError(f"Unexpected chunk from provider: {type(chunk).__name__}")
        events: list[ParseEvent] = []
        if chunk.text:
            turn.add_text(chunk.text)
            events.extend(parser.feed(chunk.text))
        if chunk.call is not None:
            markup = normalize_call(chunk.call)
            turn.add_markup(markup)
            if chunk.call.name == COMPLETION_TAG:
                events.extend(parser.feed_structured(markup, chunk.call.call_id))
            else:
                # The text segment ends here; a half-open tag in it is dropped.
                events.extend(parser.finish())
                call = to_tool_call(chunk.call, chunk.call.call_id or self._new_call_id())
                events.append(ToolCallDetected(name=call.name))
                events.append(ToolCallComplete(call=call))
        return events

    # ------------------------------------------------------------------
    # Tool dispatch
    # ------------------------------------------------------------------

    async def _dispatch(self, call: ToolCall) -> AsyncIterator[LoopEvent]:
        if self._cancel.cancelled:
            yield self._cancelled()
            return

        entry = self._registry.get(call.name)
        flagged = entry.requires_approval if entry is not None else False

        if self._gate.requires_approval(call.name, flagged):
            self._state.set_pending(call)
            yield self._set_status(TaskStatus.AWAITING_APPROVAL)
            yield ApprovalRequested(call=call, description=describe_tool_call(call))
            decision = await self._gate.request_approval(call, self._cancel)
            if decision is None:
                # Pending call discarded without an outcome.
                yield self._cancelled()
                return
            if decision is ApprovalDecision.DENY:
                logger.info("User rejected %s (%s)", call.name, call.call_id)
                yield self._set_status(TaskStatus.RUNNING)
                yield self._fold(ToolOutcome.fail(call, REJECTED_BY_USER))
                return

        yield self._set_status(TaskStatus.EXECUTING_TOOL)
        # Not raced against cancellation: an in-flight tool always finishes.
        outcome = await self._executor.execute(call, timeout=self._config.tool_timeout)
        yield self._fold(outcome)
        if self._cancel.cancelled:
            yield self._cancelled()
        else:
            yield self._set_status(TaskStatus.RUNNING)

    def _fold(self, outcome: ToolOutcome) -> ToolOutcomeEvent:
        self._state.fold_outcome(outcome)
        return ToolOutcomeEvent(outcome=outcome)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _set_status(self, status: TaskStatus, reason: str | None = None) -> StatusChanged:
        old = self._state.transition(status, reason)
        return StatusChanged(old=old, new=status, reason=reason)

    def _fail(self, error: Exception, reason: str | None = None) -> StatusChanged:
        self.state.error = error
        return self._set_status(TaskStatus.FAILED, reason or str(error))

    def _cancelled(self) -> StatusChanged:
        reason = self._cancel.reason
        self.state.error = TaskCancelled(reason or "Task cancelled")
        return self._set_status(TaskStatus.CANCELLED, reason)

    def _new_call_id(self) -> str:
        return f"call_{next(self._ids)}"

    def _notify(self, event: LoopEvent) -> None:
        for observer in self._observers:
            try:
                observer.on_event(event)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Observer %r failed on %s: %s", observer, type(event).__name__, exc)
