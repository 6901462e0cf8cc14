"""Scripted model turns read from a JSONL file.

Each line is one turn, either a JSON string (the reply text) or an object::

    {"text": "Reading first.", "calls": [{"name": "read_note", "arguments": {"path": "a.md"}}]}

``calls`` are delivered after the text through the structured channel, the
way a function-calling backend would send them.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any

from notepilot.errors import NotepilotError
from notepilot.tools.catalog import NOTE_TOOLS
from notepilot.types.providers import StructuredCall, TurnChunk
from notepilot.types.tools import ToolHandler

logger = logging.getLogger(__name__)


def _parse_turn(line_no: int, data: Any) -> list[TurnChunk]:
    if isinstance(data, str):
        return [TurnChunk(text=data)] if data else []
    if not isinstance(data, dict):
        raise ValueError(f"line {line_no}: expected a string or an object")
    chunks: list[TurnChunk] = []
    if data.get("text"):
        chunks.append(TurnChunk(text=str(data["text"])))
    for raw in data.get("calls") or ():
        if not isinstance(raw, dict) or not raw.get("name"):
            raise ValueError(f"line {line_no}: every call needs a name")
        chunks.append(TurnChunk(call=StructuredCall(
            name=str(raw["name"]),
            arguments=raw.get("arguments") or {},
            call_id=raw.get("call_id"),
        )))
    return chunks


def load_turns(path: str | Path) -> list[list[TurnChunk]]:
    """Read scripted turns from *path*. Blank lines are skipped."""
    turns: list[list[TurnChunk]] = []
    with open(path, encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            turns.append(_parse_turn(line_no, json.loads(line)))
    return turns


class ReplayProvider:
    """Plays back scripted turns, one per request.

    Asking for more turns than were scripted raises :class:`NotepilotError`,
    which fails the task.
    """

    def __init__(self, turns: list[list[TurnChunk]], chunk_size: int = 0) -> None:
        self._turns = list(turns)
        self._chunk_size = chunk_size
        self._index = 0

    @property
    def turns_played(self) -> int:
        return self._index

    async def request_turn(self, history: list[dict[str, str]]) -> AsyncIterator[TurnChunk]:
        if self._index >= len(self._turns):
            raise NotepilotError(f"Replay exhausted after {len(self._turns)} turns")
        chunks = self._turns[self._index]
        self._index += 1
        logger.debug("Replaying turn %d (%d chunks)", self._index, len(chunks))

        for chunk in chunks:
            if chunk.text and self._chunk_size > 0:
                text = chunk.text
                for start in range(0, len(text), self._chunk_size):
                    yield TurnChunk(text=text[start:start + self._chunk_size])
                    await asyncio.sleep(0)
            else:
                yield chunk
                await asyncio.sleep(0)


def _dry_run(name: str) -> ToolHandler:
    def handler(params: dict[str, Any]) -> str:
        args = ", ".join(f"{k}={v!r}" for k, v in params.items())
        return f"[dry run] {name}({args})"

    return handler


def dry_run_handlers() -> dict[str, ToolHandler]:
    """Handlers for every catalog tool that only echo the call back."""
    return {tool.name: _dry_run(tool.name) for tool in NOTE_TOOLS}
