"""Tool definition types and protocols."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Union

PARAM_TYPES = frozenset({"string", "integer", "number", "boolean", "array", "object"})


@dataclass(frozen=True, slots=True)
class ToolParam:
    """A parameter for a tool."""

    name: str
    type: str  # "string", "integer", "number", "boolean", "array", "object"
    description: str = ""
    required: bool = True
    enum: tuple[str, ...] | None = None
    items: dict[str, Any] | None = None  # For array types: JSON Schema for items


@dataclass(frozen=True, slots=True)
class ToolDef:
    """Definition of a tool exposed to the model."""

    name: str
    description: str = ""
    parameters: tuple[ToolParam, ...] = ()

    @property
    def required(self) -> tuple[str, ...]:
        return tuple(p.name for p in self.parameters if p.required)

    def param(self, name: str) -> ToolParam | None:
        for p in self.parameters:
            if p.name == name:
                return p
        return None

    def to_function_schema(self) -> dict[str, Any]:
        """Render the schema in the function-calling format used by structured backends."""
        properties: dict[str, Any] = {}
        for p in self.parameters:
            prop: dict[str, Any] = {"type": p.type, "description": p.description or p.name}
            if p.enum:
                prop["enum"] = list(p.enum)
            if p.items:
                prop["items"] = dict(p.items)
            properties[p.name] = prop
        params: dict[str, Any] = {"type": "object", "properties": properties}
        if self.required:
            params["required"] = list(self.required)
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description or self.name,
                "parameters": params,
            },
        }


ToolHandler = Callable[[dict[str, Any]], Union[Any, Awaitable[Any]]]
"""Handler signature: validated parameters in, result out (sync or async)."""


@dataclass(frozen=True, slots=True)
class RegisteredTool:
    """A registry entry."""

    definition: ToolDef
    requires_approval: bool
    handler: ToolHandler

    @property
    def name(self) -> str:
        return self.definition.name
