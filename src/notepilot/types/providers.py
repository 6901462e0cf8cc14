"""Model-turn provider protocol and chunk types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class StructuredCall:
    """A tool call delivered through a backend's native function-calling channel."""

    name: str
    arguments: dict[str, Any] | str = field(default_factory=dict)
    call_id: str | None = None


@dataclass(frozen=True, slots=True)
class TurnChunk:
    """A single item from a streaming model turn: a text fragment or a structured call."""

    text: str | None = None
    call: StructuredCall | None = None


@runtime_checkable
class ModelTurnProvider(Protocol):
    """Protocol that model backends must implement."""

    def request_turn(self, history: list[dict[str, str]]) -> Any:
        """Stream one model turn. Returns an async iterator of TurnChunk or str."""
        ...
