"""Tests for notepilot.cli — the click command group."""

from __future__ import annotations

import json
from pathlib import Path

from click.testing import CliRunner

from notepilot.cli.main import cli
from notepilot.core.prompts import wrap_task
from notepilot.core.state import StateManager
from notepilot.core.transcript import dump_history, load_history
from notepilot.permissions.approval import REJECTED_BY_USER
from notepilot.types.messages import Role, ToolCall, ToolOutcome

REPLY = (
    "<thinking>check first</thinking>"
    "<read_note><path>a.md</path></read_note>"
    "<attempt_completion><result>ok</result></attempt_completion>"
)


class TestParseCommand:
    def test_json_events(self, tmp_path: Path):
        reply = tmp_path / "reply.txt"
        reply.write_text(REPLY)
        result = CliRunner().invoke(cli, ["parse", str(reply), "--chunk-size", "3", "--json"])
        assert result.exit_code == 0, result.output
        events = [json.loads(line) for line in result.output.splitlines()]
        assert [e["event"] for e in events] == [
            "ThinkingBlock", "ToolCallDetected", "ToolCallComplete", "CompletionDetected",
        ]
        assert events[2]["call"] == {
            "name": "read_note", "call_id": "call_1", "parameters": {"path": "a.md"},
        }

    def test_table_output(self, tmp_path: Path):
        reply = tmp_path / "reply.txt"
        reply.write_text(REPLY)
        result = CliRunner().invoke(cli, ["parse", str(reply)])
        assert result.exit_code == 0, result.output
        assert "thinking" in result.output
        assert "completion" in result.output

    def test_missing_file(self, tmp_path: Path):
        result = CliRunner().invoke(cli, ["parse", str(tmp_path / "nope.txt")])
        assert result.exit_code != 0


class TestToolsCommand:
    def test_json_schemas(self):
        result = CliRunner().invoke(cli, ["tools", "--json"])
        assert result.exit_code == 0, result.output
        schemas = json.loads(result.output)
        assert len(schemas) == 18
        assert schemas[0]["function"]["name"] == "read_note"


class TestSummarizeCommand:
    def test_rounds(self, tmp_path: Path):
        state = StateManager()
        state.append(Role.USER, wrap_task("Read a.md"))
        state.append(Role.ASSISTANT, "<read_note><path>a.md</path></read_note>")
        call = ToolCall(name="read_note", call_id="call_1")
        state.fold_outcome(ToolOutcome.ok(call, "text"))
        state.append(Role.ASSISTANT, "<attempt_completion><result>Read.</result></attempt_completion>")
        path = tmp_path / "history.jsonl"
        dump_history(state.history, path)

        result = CliRunner().invoke(cli, ["summarize", str(path)])
        assert result.exit_code == 0, result.output
        assert "Round 1" in result.output
        assert "read_note [ok]" in result.output
        assert "answer: Read." in result.output

    def test_bad_file(self, tmp_path: Path):
        path = tmp_path / "history.jsonl"
        path.write_text("not json\n")
        result = CliRunner().invoke(cli, ["summarize", str(path)])
        assert result.exit_code == 1


class TestStrictParse:
    def test_unterminated_fails(self, tmp_path: Path):
        reply = tmp_path / "reply.txt"
        reply.write_text("<read_note><path>a.md</path>")
        result = CliRunner().invoke(cli, ["parse", str(reply), "--strict", "--json"])
        assert result.exit_code == 2


def _write_turns(path: Path, *turns) -> Path:
    path.write_text("\n".join(json.dumps(t) for t in turns) + "\n")
    return path


DONE = "<attempt_completion><result>Done.</result></attempt_completion>"


class TestReplayCommand:
    def test_read_then_complete(self, tmp_path: Path):
        turns = _write_turns(
            tmp_path / "turns.jsonl",
            {"text": "<read_note><path>a.md</path></read_note>"},
            DONE,
        )
        result = CliRunner().invoke(cli, ["replay", str(turns), "--chunk-size", "5"])
        assert result.exit_code == 0, result.output
        assert "[dry run] read_note(path='a.md')" in result.output
        assert "Task completed after 2 iterations" in result.output

    def test_yes_approves_structured_call(self, tmp_path: Path):
        turns = _write_turns(
            tmp_path / "turns.jsonl",
            {"calls": [{"name": "create_note", "arguments": {"path": "n.md", "content": "hi"}}]},
            DONE,
        )
        saved = tmp_path / "history.jsonl"
        result = CliRunner().invoke(
            cli, ["replay", str(turns), "--yes", "--save", str(saved)],
        )
        assert result.exit_code == 0, result.output
        history = load_history(saved)
        assert any("[dry run] create_note(" in m.content for m in history)

    def test_closed_stdin_denies(self, tmp_path: Path):
        turns = _write_turns(
            tmp_path / "turns.jsonl",
            {"calls": [{"name": "delete_note", "arguments": {"path": "a.md"}}]},
            DONE,
        )
        saved = tmp_path / "history.jsonl"
        result = CliRunner().invoke(cli, ["replay", str(turns), "--save", str(saved)])
        assert result.exit_code == 0, result.output
        history = load_history(saved)
        assert any(REJECTED_BY_USER in m.content for m in history)
        assert not any("[dry run] delete_note(" in m.content for m in history)

    def test_running_out_of_turns_fails(self, tmp_path: Path):
        turns = _write_turns(tmp_path / "turns.jsonl", "Just talking.")
        result = CliRunner().invoke(cli, ["replay", str(turns)])
        assert result.exit_code == 1
        assert "Replay exhausted after 1 turns" in result.output

    def test_bad_file(self, tmp_path: Path):
        turns = tmp_path / "turns.jsonl"
        turns.write_text('{"calls": [{"arguments": {}}]}\n')
        result = CliRunner().invoke(cli, ["replay", str(turns)])
        assert result.exit_code == 1
        assert "every call needs a name" in result.output
