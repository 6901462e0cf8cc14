"""CLI entry point for notepilot."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from notepilot.core.config import build_loop_config
from notepilot.core.loop import AgentLoop
from notepilot.core.replay import ReplayProvider, dry_run_handlers, load_turns
from notepilot.core.transcript import dump_history, load_history, summarize_rounds
from notepilot.errors import ConfigError, ParseAmbiguity
from notepilot.parsing.tags import TagParser, coalesce_events
from notepilot.tools.catalog import APPROVAL_REQUIRED, NOTE_TOOLS, register_note_tools
from notepilot.tools.registry import ToolRegistry
from notepilot.types.events import (
    CompletionDetected,
    ParseEvent,
    PlainText,
    ThinkingBlock,
    ToolCallComplete,
    ToolCallDetected,
)
from notepilot.types.task import TaskStatus
from notepilot.ui.approval import RichApprovalSource
from notepilot.ui.console import ConsoleObserver


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _event_row(event: ParseEvent) -> tuple[str, str]:
    match event:
        case PlainText(text=t):
            return "text", t.strip()
        case ThinkingBlock(text=t):
            return "thinking", t
        case ToolCallDetected(name=name):
            return "tool-open", name
        case ToolCallComplete(call=call):
            params = json.dumps(call.parameters, ensure_ascii=False)
            return "tool-call", f"{call.call_id} {call.name} {params}"
        case CompletionDetected(result=r):
            return "completion", r
    return type(event).__name__, ""


def _event_json(event: ParseEvent) -> dict:
    data = {"event": type(event).__name__}
    if isinstance(event, ToolCallComplete):
        data["call"] = {
            "name": event.call.name,
            "call_id": event.call.call_id,
            "parameters": event.call.parameters,
        }
    else:
        data.update(asdict(event))
    return data


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
def cli(verbose: bool) -> None:
    """notepilot -- tool-orchestration core for a note-taking agent.

    \b
    Usage:
      notepilot parse reply.txt --chunk-size 7
      notepilot tools
      notepilot summarize history.jsonl
      notepilot replay turns.jsonl --yes
    """
    _configure_logging(verbose)


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--chunk-size", default=0, help="Feed the text in chunks of N characters")
@click.option("--json", "as_json", is_flag=True, help="Emit one JSON object per event")
@click.option("--strict", is_flag=True, help="Fail if a tag is still open at the end")
def parse(path: Path, chunk_size: int, as_json: bool, strict: bool) -> None:
    """Replay a recorded model reply through the tag parser."""
    text = path.read_text(encoding="utf-8")
    size = chunk_size if chunk_size > 0 else max(1, len(text))
    parser = TagParser()
    events: list[ParseEvent] = []
    for start in range(0, len(text), size):
        events.extend(parser.feed(text[start:start + size]))
    try:
        events.extend(parser.finish(strict=strict))
    except ParseAmbiguity as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)
    events = coalesce_events(events)

    if as_json:
        for event in events:
            click.echo(json.dumps(_event_json(event), ensure_ascii=False))
    else:
        table = Table(title=str(path))
        table.add_column("Event", style="cyan")
        table.add_column("Detail")
        for event in events:
            kind, detail = _event_row(event)
            if kind == "text" and not detail:
                continue
            table.add_row(kind, escape(detail))
        Console().print(table)

    if parser.unterminated:
        click.echo(
            f"Dropped unterminated tags: {', '.join(parser.unterminated)}", err=True,
        )


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Print function-calling schemas")
def tools(as_json: bool) -> None:
    """List the note tool catalog."""
    if as_json:
        click.echo(json.dumps([t.to_function_schema() for t in NOTE_TOOLS], indent=2))
        return
    table = Table(title="Note tools")
    table.add_column("Name", style="cyan")
    table.add_column("Parameters")
    table.add_column("Approval")
    for tool in NOTE_TOOLS:
        params = ", ".join(f"{p.name}{'*' if p.required else ''}" for p in tool.parameters)
        table.add_row(tool.name, params, "yes" if tool.name in APPROVAL_REQUIRED else "")
    Console().print(table)


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def summarize(path: Path) -> None:
    """Summarize a JSONL conversation history round by round."""
    try:
        history = load_history(path)
    except (json.JSONDecodeError, KeyError, ValueError) as exc:
        click.echo(f"Error: cannot read {path}: {exc}", err=True)
        sys.exit(1)

    console = Console()
    for i, rnd in enumerate(summarize_rounds(history), start=1):
        console.print(f"[bold]Round {i}[/bold]: {escape(rnd.user_text)}")
        console.print(f"  [dim]{rnd.step_count} steps[/dim]")
        for call in rnd.tool_calls:
            status = "pending" if call.succeeded is None else ("ok" if call.succeeded else "error")
            console.print(f"  - {call.name} [{status}]", markup=False)
        if rnd.final_answer:
            console.print(f"  answer: {rnd.final_answer}", markup=False)


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--task", "task_text", default="Replay recorded turns", help="Task text for the first message")
@click.option("--yes", "-y", is_flag=True, help="Approve every tool call without asking")
@click.option("--chunk-size", default=0, help="Stream reply text in chunks of N characters")
@click.option("--max-iterations", type=int, default=None, help="Override the iteration cap")
@click.option("--hide-thinking", is_flag=True, help="Do not print thinking blocks")
@click.option("--save", type=click.Path(dir_okay=False, path_type=Path), help="Write the history as JSONL")
def replay(
    path: Path,
    task_text: str,
    yes: bool,
    chunk_size: int,
    max_iterations: int | None,
    hide_thinking: bool,
    save: Path | None,
) -> None:
    """Run the agent loop over scripted turns with dry-run note tools."""
    try:
        turns = load_turns(path)
    except (json.JSONDecodeError, ValueError) as exc:
        click.echo(f"Error: cannot read {path}: {exc}", err=True)
        sys.exit(1)
    try:
        config = build_loop_config(
            max_iterations=max_iterations,
            auto_approve=sorted(APPROVAL_REQUIRED) if yes else None,
        )
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    registry = ToolRegistry()
    register_note_tools(registry, dry_run_handlers())
    loop = AgentLoop(
        ReplayProvider(turns, chunk_size=chunk_size),
        registry.freeze(),
        config=config,
        approval=RichApprovalSource(),
        observers=[ConsoleObserver(console=Console(), show_thinking=not hide_thinking)],
    )
    state = asyncio.run(loop.run_to_end(task_text))

    if save is not None:
        dump_history(loop.history, save)
    click.echo(f"\nTask {state.status.value} after {state.iteration_count} iterations")
    if state.status is not TaskStatus.COMPLETED:
        sys.exit(1)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
