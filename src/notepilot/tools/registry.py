"""ToolRegistry — maps tool names to schema, approval flag and handler."""

from __future__ import annotations

from notepilot.errors import DuplicateToolError, RegistryFrozenError, UnknownToolError
from notepilot.types.tools import RegisteredTool, ToolDef, ToolHandler


class ToolRegistry:
    """Declarative table of available tools.

    Built once at startup and then frozen; a frozen registry is read-only
    and may be shared by any number of concurrent agent loops.

    Usage::

        registry = ToolRegistry()
        registry.register("read_note", schema, requires_approval=False, handler=read)
        registry.freeze()
        entry = registry.lookup("read_note")
    """

    def __init__(self) -> None:
        self._registry: dict[str, RegisteredTool] = {}
        self._frozen = False

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(
        self,
        name: str,
        schema: ToolDef,
        requires_approval: bool,
        handler: ToolHandler,
    ) -> RegisteredTool:
        """Add a tool. *schema.name* is overridden by *name* if they differ."""
        if self._frozen:
            raise RegistryFrozenError(f"Cannot register '{name}': registry is frozen")
        if name in self._registry:
            raise DuplicateToolError(f"Tool '{name}' is already registered")
        if schema.name != name:
            schema = ToolDef(name=name, description=schema.description, parameters=schema.parameters)
        entry = RegisteredTool(
            definition=schema,
            requires_approval=requires_approval,
            handler=handler,
        )
        self._registry[name] = entry
        return entry

    def freeze(self) -> ToolRegistry:
        """Stop accepting registrations. Returns self for chaining."""
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def lookup(self, name: str) -> RegisteredTool:
        """Return the entry for *name* or raise UnknownToolError."""
        entry = self._registry.get(name)
        if entry is None:
            raise UnknownToolError(name, list(self._registry))
        return entry

    def get(self, name: str) -> RegisteredTool | None:
        """Return the entry with the given name, or None."""
        return self._registry.get(name)

    def names(self) -> list[str]:
        return sorted(self._registry)

    def definitions(self) -> list[ToolDef]:
        """Return all registered tool definitions (for provider schema)."""
        return [entry.definition for entry in self._registry.values()]

    def function_schemas(self) -> list[dict]:
        """Definitions rendered for structured-call backends."""
        return [d.to_function_schema() for d in self.definitions()]

    # ------------------------------------------------------------------
    # Filtering
    # ------------------------------------------------------------------

    def filter(self, names: list[str]) -> ToolRegistry:
        """Return a new frozen registry containing only the named tools.

        Tools not present in this registry are silently omitted.
        """
        filtered = ToolRegistry()
        for name in names:
            entry = self._registry.get(name)
            if entry is not None:
                filtered._registry[name] = entry
        return filtered.freeze()

    # ------------------------------------------------------------------
    # Dunder helpers
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._registry)

    def __contains__(self, name: object) -> bool:
        return name in self._registry

    def __repr__(self) -> str:
        return f"ToolRegistry(tools={sorted(self._registry)}, frozen={self._frozen})"
