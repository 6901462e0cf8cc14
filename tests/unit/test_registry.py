"""Tests for notepilot.tools.registry."""

from __future__ import annotations

import pytest

from notepilot.errors import DuplicateToolError, RegistryFrozenError, UnknownToolError
from notepilot.tools.registry import ToolRegistry
from notepilot.types.tools import ToolDef
from tests.conftest import READ_NOTE, RecordingHandler


class TestToolRegistry:
    def test_register_and_lookup(self):
        reg = ToolRegistry()
        handler = RecordingHandler()
        reg.register("read_note", READ_NOTE, False, handler)
        entry = reg.lookup("read_note")
        assert entry.name == "read_note"
        assert entry.handler is handler
        assert not entry.requires_approval

    def test_lookup_unknown_lists_available(self, registry: ToolRegistry):
        with pytest.raises(UnknownToolError) as info:
            registry.lookup("summon_unicorn")
        assert info.value.name == "summon_unicorn"
        assert "read_note" in str(info.value)

    def test_get_returns_none(self, registry: ToolRegistry):
        assert registry.get("nope") is None

    def test_duplicate_rejected(self):
        reg = ToolRegistry()
        reg.register("read_note", READ_NOTE, False, RecordingHandler())
        with pytest.raises(DuplicateToolError):
            reg.register("read_note", READ_NOTE, False, RecordingHandler())

    def test_frozen_rejects_registration(self, registry: ToolRegistry):
        assert registry.frozen
        with pytest.raises(RegistryFrozenError):
            registry.register("other", ToolDef("other"), False, RecordingHandler())

    def test_schema_renamed_to_registered_name(self):
        reg = ToolRegistry()
        reg.register("open_note", READ_NOTE, False, RecordingHandler())
        assert reg.lookup("open_note").definition.name == "open_note"

    def test_names_and_len(self, registry: ToolRegistry):
        assert registry.names() == ["create_note", "list_notes", "read_note"]
        assert len(registry) == 3
        assert "read_note" in registry
        assert "nope" not in registry

    def test_function_schemas(self, registry: ToolRegistry):
        schemas = {s["function"]["name"]: s for s in registry.function_schemas()}
        create = schemas["create_note"]["function"]["parameters"]
        assert set(create["properties"]) == {"path", "content"}
        assert create["required"] == ["path", "content"]

    def test_filter(self, registry: ToolRegistry):
        sub = registry.filter(["read_note", "missing"])
        assert sub.names() == ["read_note"]
        assert sub.frozen
