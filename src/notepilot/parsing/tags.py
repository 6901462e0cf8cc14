"""Incremental tag parser for streamed model output.

The parser consumes text fragments as they arrive and emits typed events.
A fragment boundary may fall anywhere, including inside a tag name, so any
trailing ``<...`` that could still turn into a tag is held back until more
text arrives.

Classification of a tag name is a denylist: every identifier that is not a
reserved structural tag is a tool invocation. New tools never require a
parser change.
"""

from __future__ import annotations

import itertools
import logging
import re
from collections.abc import AsyncIterable, AsyncIterator, Callable, Iterable
from typing import Any

from notepilot.errors import ParseAmbiguity
from notepilot.types.events import (
    CompletionDetected,
    ParseEvent,
    PlainText,
    ThinkingBlock,
    ToolCallComplete,
    ToolCallDetected,
)
from notepilot.types.messages import SourceFormat, ToolCall

logger = logging.getLogger(__name__)

THINKING_TAG = "thinking"
COMPLETION_TAG = "attempt_completion"
COMPLETION_RESULT_TAG = "attempt_completion_result"

# Emitted by some reasoning models after their hidden chain of thought.
END_OF_THINKING_SENTINEL = "<|end_of_thinking|>"

# Structural tags that are never tool invocations: parameter wrappers and
# the task/context wrappers the application puts around user input.
RESERVED_TAGS = frozenset({
    "thinking",
    "task",
    "current_note",
    "related_notes",
    "tool_result",
    "tool_error",
    "result",
    "attempt_completion",
    "attempt_completion_result",
    "directory",
    "recursive",
    "paths",
    "path",
    "content",
    "edits",
    "edit",
    "search",
    "replace",
    "query",
    "limit",
    "new_name",
    "from",
    "to",
    "regex",
    "case_sensitive",
    "min_score",
    "include_content",
    "database_id",
    "filter_column",
    "filter_value",
    "cells",
    "note_name",
    "include_context",
    "source_note",
    "deck",
    "types",
    "count",
    "language",
    "front",
    "back",
    "text",
    "question",
    "options",
    "answer",
    "items",
    "item",
    "ordered",
    "explanation",
    "source",
    "type",
    "id",
})

_OPEN_TAG_RE = re.compile(r"<([A-Za-z_]\w*)>")
_PARTIAL_OPEN_RE = re.compile(r"<(?:[A-Za-z_]\w*)?")
_LEAF_RE = re.compile(r"<([A-Za-z_]\w*)>(.*?)</\1>", re.DOTALL)
_RESULT_RE = re.compile(r"<result>(.*?)</result>", re.DOTALL)


def is_tool_tag(name: str) -> bool:
    """Return True if *name* denotes a tool invocation rather than structure."""
    return name.lower() not in RESERVED_TAGS


def parse_parameters(body: str) -> dict[str, str]:
    """Extract ``<name>value</name>`` leaf parameters from a tool body.

    The first closing tag of the same name ends a value. Surrounding
    newlines are trimmed; repeated names keep their first value.
    """
    params: dict[str, str] = {}
    for match in _LEAF_RE.finditer(body):
        params.setdefault(match.group(1), match.group(2).strip("\r\n"))
    return params


class TagParser:
    """Buffered state machine that turns text fragments into parse events.

    Usage::

        parser = TagParser()
        for fragment in fragments:
            for event in parser.feed(fragment):
                handle(event)
        for event in parser.finish():
            handle(event)
    """

    def __init__(self, id_factory: Callable[[], str] | None = None) -> None:
        if id_factory is None:
            counter = itertools.count(1)
            id_factory = lambda: f"call_{next(counter)}"  # noqa: E731
        self._next_id = id_factory
        self._buf = ""
        self._open: str | None = None  # tag whose body is being collected
        self._scan_pos = 0  # where to resume looking for the closing tag
        self._override: tuple[SourceFormat, str | None] | None = None
        self.unterminated: list[str] = []

    @property
    def inside_tag(self) -> str | None:
        """Name of the tag currently being collected, if any."""
        return self._open

    def feed(self, fragment: str) -> list[ParseEvent]:
        """Consume one fragment and return the events that became certain."""
        if not fragment:
            return []
        self._buf += fragment
        events: list[ParseEvent] = []
        self._drain(events, final=False)
        return events

    def feed_structured(
        self, markup: str, call_id: str | None = None,
    ) -> list[ParseEvent]:
        """Consume markup produced from a structured call.

        Any partially collected tag from the preceding text is discarded
        first, because the text segment it belonged to has ended.
        """
        events = self.finish()
        self._override = (SourceFormat.STRUCTURED, call_id)
        try:
            events.extend(self.feed(markup))
            events.extend(self.finish())
        finally:
            self._override = None
        return events

    def finish(self, strict: bool = False) -> list[ParseEvent]:
        """Flush at end of stream. Unterminated tags are dropped.

        With *strict*, an unterminated tag raises ParseAmbiguity instead
        (after the parser has been reset).
        """
        events: list[ParseEvent] = []
        self._drain(events, final=True)
        dropped = self._open
        if dropped is not None:
            logger.debug("Dropping unterminated <%s> at end of stream", dropped)
            self.unterminated.append(dropped)
            self._open = None
        elif self._buf:
            self._emit_text(events, self._buf)
        self._buf = ""
        self._scan_pos = 0
        if strict and dropped is not None:
            raise ParseAmbiguity(f"Unterminated <{dropped}> at end of stream")
        return events

    async def parse_stream(
        self, fragments: AsyncIterable[str],
    ) -> AsyncIterator[ParseEvent]:
        """Lazily parse an async fragment source."""
        async for fragment in fragments:
            for event in self.feed(fragment):
                yield event
        for event in self.finish():
            yield event

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def _drain(self, events: list[ParseEvent], *, final: bool) -> None:
        while self._buf:
            if self._open is not None:
                if not self._close_block(events):
                    return
                continue

            lt = self._buf.find("<")
            if lt == -1:
                self._emit_text(events, self._buf)
                self._buf = ""
                return
            if lt > 0:
                self._emit_text(events, self._buf[:lt])
                self._buf = self._buf[lt:]

            rest = self._buf
            if rest.startswith(END_OF_THINKING_SENTINEL):
                self._buf = rest[len(END_OF_THINKING_SENTINEL):]
                continue

            match = _OPEN_TAG_RE.match(rest)
            if match is not None:
                self._buf = rest[match.end():]
                self._open_tag(events, match.group(1), match.group(0))
                continue

            could_grow = (
                END_OF_THINKING_SENTINEL.startswith(rest)
                or _PARTIAL_OPEN_RE.fullmatch(rest) is not None
            )
            if could_grow and not final:
                return  # wait for the rest of the tag
            # Not a tag: the '<' is ordinary text.
            self._emit_text(events, "<")
            self._buf = rest[1:]

    def _open_tag(self, events: list[ParseEvent], name: str, raw: str) -> None:
        if name in (THINKING_TAG, COMPLETION_TAG, COMPLETION_RESULT_TAG):
            self._open = name
        elif is_tool_tag(name):
            self._open = name
            events.append(ToolCallDetected(name=name))
        else:
            # Structural markup at top level is passed through as text.
            self._emit_text(events, raw)
            return
        self._scan_pos = 0

    def _close_block(self, events: list[ParseEvent]) -> bool:
        name = self._open
        assert name is not None
        close = f"</{name}>"
        idx = self._buf.find(close, self._scan_pos)
        if idx == -1:
            self._scan_pos = max(0, len(self._buf) - len(close) + 1)
            return False

        body = self._buf[:idx]
        self._buf = self._buf[idx + len(close):]
        self._open = None
        self._scan_pos = 0

        if name == THINKING_TAG:
            events.append(ThinkingBlock(text=body.strip()))
        elif name == COMPLETION_RESULT_TAG:
            events.append(CompletionDetected(result=body.strip()))
        elif name == COMPLETION_TAG:
            result = _RESULT_RE.search(body)
            text = result.group(1) if result else body
            events.append(CompletionDetected(result=text.strip()))
        else:
            events.append(ToolCallComplete(call=self._make_call(name, body)))
        return True

    def _make_call(self, name: str, body: str) -> ToolCall:
        source_format = SourceFormat.TAGGED
        call_id: str | None = None
        if self._override is not None:
            source_format, call_id = self._override
        return ToolCall(
            name=name,
            parameters=parse_parameters(body),
            call_id=call_id or self._next_id(),
            source_format=source_format,
            raw=f"<{name}>{body}</{name}>",
        )

    @staticmethod
    def _emit_text(events: list[ParseEvent], text: str) -> None:
        if not text:
            return
        if events and isinstance(events[-1], PlainText):
            events[-1] = PlainText(text=events[-1].text + text)
        else:
            events.append(PlainText(text=text))


def coalesce_events(events: Iterable[Any]) -> list[Any]:
    """Merge adjacent PlainText events so that differently split streams compare equal."""
    merged: list[Any] = []
    for event in events:
        if isinstance(event, PlainText) and merged and isinstance(merged[-1], PlainText):
            merged[-1] = PlainText(text=merged[-1].text + event.text)
        else:
            merged.append(event)
    return merged


def parse_text(text: str, id_factory: Callable[[], str] | None = None) -> list[ParseEvent]:
    """Parse a complete string in one go."""
    parser = TagParser(id_factory=id_factory)
    events = parser.feed(text)
    events.extend(parser.finish())
    return coalesce_events(events)
