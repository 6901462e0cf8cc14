"""Test fixtures including MockProvider for deterministic testing."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

import pytest

from notepilot.tools.registry import ToolRegistry
from notepilot.types.providers import StructuredCall, TurnChunk
from notepilot.types.tools import ToolDef, ToolParam


@dataclass
class MockTurn:
    """A scripted turn for MockProvider.

    ``text`` is streamed in pieces of ``chunk_size`` characters (whole if 0);
    ``calls`` are delivered afterwards as structured calls.
    """

    text: str = ""
    chunk_size: int = 0
    calls: list[StructuredCall] = field(default_factory=list)
    hang: bool = False  # after the text, wait forever (for cancellation tests)


class MockProvider:
    """A deterministic mock provider for testing.

    Usage:
        provider = MockProvider(turns=[
            MockTurn(text="<read_note><path>a.md</path></read_note>"),
            MockTurn(text="<attempt_completion><result>ok</result></attempt_completion>"),
        ])
    """

    def __init__(self, turns: list[MockTurn]):
        self._turns = list(turns)
        self._turn_index = 0
        self.histories: list[list[dict[str, str]]] = []
        self.streaming = asyncio.Event()

    @property
    def calls_made(self) -> int:
        return self._turn_index

    async def request_turn(self, history: list[dict[str, str]]) -> AsyncIterator[Any]:
        """Yield scripted chunks for the current turn."""
        self.histories.append(list(history))
        if self._turn_index >= len(self._turns):
            # No more turns: an empty reply
            return
        turn = self._turns[self._turn_index]
        self._turn_index += 1

        size = turn.chunk_size or max(1, len(turn.text))
        for start in range(0, len(turn.text), size):
            yield turn.text[start:start + size]
            await asyncio.sleep(0)

        for call in turn.calls:
            yield TurnChunk(call=call)

        if turn.hang:
            self.streaming.set()
            await asyncio.Event().wait()


class FailingMockProvider:
    """A provider that raises on every request."""

    async def request_turn(self, history: list[dict[str, str]]) -> AsyncIterator[Any]:
        raise ConnectionError("Simulated model failure")
        yield  # pragma: no cover


class RecordingHandler:
    """Tool handler that records every invocation."""

    def __init__(self, result: Any = "ok", error: Exception | None = None) -> None:
        self.result = result
        self.error = error
        self.calls: list[dict[str, Any]] = []

    async def __call__(self, params: dict[str, Any]) -> Any:
        self.calls.append(params)
        if self.error is not None:
            raise self.error
        return self.result

    @property
    def called(self) -> bool:
        return bool(self.calls)


READ_NOTE = ToolDef("read_note", "Read a note.", (
    ToolParam("path", "string", "Note path"),
))
CREATE_NOTE = ToolDef("create_note", "Create a note.", (
    ToolParam("path", "string", "Note path"),
    ToolParam("content", "string", "Content"),
))
LIST_NOTES = ToolDef("list_notes", "List notes.", (
    ToolParam("directory", "string", "Directory", required=False),
    ToolParam("recursive", "boolean", "Recurse", required=False),
))


@pytest.fixture
def read_handler() -> RecordingHandler:
    return RecordingHandler(result="hello")


@pytest.fixture
def create_handler() -> RecordingHandler:
    return RecordingHandler(result="created")


@pytest.fixture
def registry(read_handler: RecordingHandler, create_handler: RecordingHandler) -> ToolRegistry:
    """read_note (no approval), create_note (approval) and list_notes."""
    reg = ToolRegistry()
    reg.register("read_note", READ_NOTE, False, read_handler)
    reg.register("create_note", CREATE_NOTE, True, create_handler)
    reg.register("list_notes", LIST_NOTES, False, RecordingHandler(result=["a.md", "b.md"]))
    return reg.freeze()
