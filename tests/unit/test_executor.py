"""Tests for notepilot.tools.executor and parameter validation."""

from __future__ import annotations

import asyncio

import pytest

from notepilot.errors import ExecutionError, ValidationError
from notepilot.tools.executor import ToolExecutor, format_payload
from notepilot.tools.registry import ToolRegistry
from notepilot.tools.validation import validate_parameters
from notepilot.types.messages import ToolCall
from notepilot.types.tools import ToolDef, ToolParam
from tests.conftest import READ_NOTE, RecordingHandler


def _call(name: str, **params) -> ToolCall:
    return ToolCall(name=name, parameters=params, call_id="call_1")


class TestValidateParameters:
    def test_missing_required(self):
        with pytest.raises(ValidationError) as info:
            validate_parameters(READ_NOTE, {})
        assert info.value.problems == ["missing required parameter 'path'"]

    def test_coerces_declared_types(self):
        schema = ToolDef("t", parameters=(
            ToolParam("limit", "integer"),
            ToolParam("min_score", "number"),
            ToolParam("recursive", "boolean"),
            ToolParam("paths", "array"),
        ))
        params = validate_parameters(schema, {
            "limit": "5", "min_score": "0.5", "recursive": "yes", "paths": "a.md, b.md",
        })
        assert params == {
            "limit": 5, "min_score": 0.5, "recursive": True, "paths": ["a.md", "b.md"],
        }

    def test_array_from_json_and_markup(self):
        schema = ToolDef("t", parameters=(ToolParam("edits", "array"),))
        assert validate_parameters(schema, {"edits": '["x"]'}) == {"edits": ["x"]}
        markup = "<edit><search>a</search><replace>b</replace></edit>"
        assert validate_parameters(schema, {"edits": markup}) == {
            "edits": [{"search": "a", "replace": "b"}],
        }

    def test_object_from_json(self):
        schema = ToolDef("t", parameters=(ToolParam("cells", "object"),))
        assert validate_parameters(schema, {"cells": '{"a": 1}'}) == {"cells": {"a": 1}}

    def test_bad_integer(self):
        schema = ToolDef("t", parameters=(ToolParam("limit", "integer"),))
        with pytest.raises(ValidationError, match="must be an integer"):
            validate_parameters(schema, {"limit": "many"})

    def test_enum(self):
        schema = ToolDef("t", parameters=(ToolParam("type", "string", enum=("basic", "cloze")),))
        with pytest.raises(ValidationError, match="must be one of"):
            validate_parameters(schema, {"type": "essay"})

    def test_undeclared_params_pass_through(self):
        assert validate_parameters(READ_NOTE, {"path": "a", "extra": "1"}) == {
            "path": "a", "extra": "1",
        }


class TestFormatPayload:
    def test_values(self):
        assert format_payload(None) == ""
        assert format_payload("text") == "text"
        assert format_payload(["a", "b"]) == '["a", "b"]'


class TestToolExecutor:
    @pytest.mark.asyncio
    async def test_success(self, registry: ToolRegistry, read_handler: RecordingHandler):
        outcome = await ToolExecutor(registry).execute(_call("read_note", path="a.md"))
        assert outcome.succeeded
        assert outcome.payload == "hello"
        assert outcome.call_id == "call_1"
        assert read_handler.calls == [{"path": "a.md"}]

    @pytest.mark.asyncio
    async def test_validation_runs_before_handler(
        self, registry: ToolRegistry, read_handler: RecordingHandler,
    ):
        outcome = await ToolExecutor(registry).execute(_call("read_note"))
        assert not outcome.succeeded
        assert "missing required parameter 'path'" in outcome.error_detail
        assert not read_handler.called

    @pytest.mark.asyncio
    async def test_unknown_tool(self, registry: ToolRegistry):
        outcome = await ToolExecutor(registry).execute(_call("summon_unicorn"))
        assert not outcome.succeeded
        assert "Unknown tool: 'summon_unicorn'" in outcome.error_detail

    @pytest.mark.asyncio
    async def test_coerced_params_reach_handler(self, registry: ToolRegistry):
        handler = registry.lookup("list_notes").handler
        outcome = await ToolExecutor(registry).execute(_call("list_notes", recursive="true"))
        assert outcome.succeeded
        assert outcome.payload == '["a.md", "b.md"]'
        assert handler.calls == [{"recursive": True}]

    @pytest.mark.asyncio
    async def test_execution_error_is_folded(self):
        reg = ToolRegistry()
        reg.register("read_note", READ_NOTE, False, RecordingHandler(error=ExecutionError("disk gone")))
        outcome = await ToolExecutor(reg).execute(_call("read_note", path="a"))
        assert not outcome.succeeded
        assert outcome.error_detail == "Tool 'read_note' failed: disk gone"

    @pytest.mark.asyncio
    async def test_unexpected_error_is_folded(self):
        reg = ToolRegistry()
        reg.register("read_note", READ_NOTE, False, RecordingHandler(error=KeyError("x")))
        outcome = await ToolExecutor(reg).execute(_call("read_note", path="a"))
        assert not outcome.succeeded
        assert "unexpected error: KeyError" in outcome.error_detail

    @pytest.mark.asyncio
    async def test_timeout(self):
        async def slow(params):
            await asyncio.sleep(10)

        reg = ToolRegistry()
        reg.register("read_note", READ_NOTE, False, slow)
        outcome = await ToolExecutor(reg).execute(_call("read_note", path="a"), timeout=0.01)
        assert not outcome.succeeded
        assert outcome.error_detail == "Tool 'read_note' timed out after 0.01s"

    @pytest.mark.asyncio
    async def test_sync_handler(self):
        reg = ToolRegistry()
        reg.register("read_note", READ_NOTE, False, lambda params: {"path": params["path"]})
        outcome = await ToolExecutor(reg).execute(_call("read_note", path="a"))
        assert outcome.payload == '{"path": "a"}'
