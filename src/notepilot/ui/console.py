"""Rich console observer for loop events."""

from __future__ import annotations

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.text import Text

from notepilot.types.events import (
    ApprovalRequested,
    CompletionDetected,
    LoopEvent,
    PlainText,
    StatusChanged,
    ThinkingBlock,
    ToolCallComplete,
    ToolCallDetected,
    ToolOutcomeEvent,
)
from notepilot.types.task import TaskStatus

_MAX_RESULT_CHARS = 200


def _summarize_params(params: dict) -> str:
    for key in ("path", "directory", "query", "note_name", "database_id", "from"):
        if key in params:
            return f"{key}: {params[key]}"
    text = ", ".join(f"{k}={v}" for k, v in params.items())
    return text[:60] + ("..." if len(text) > 60 else "")


class ConsoleObserver:
    """Prints loop events to a Rich console as they arrive.

    Plain text is streamed as-is; thinking, tool calls and outcomes are
    shown dimmed; the completion result is rendered as Markdown.
    """

    def __init__(self, console: Console | None = None, show_thinking: bool = True) -> None:
        self._console = console or Console()
        self._show_thinking = show_thinking

    def on_event(self, event: LoopEvent) -> None:
        match event:
            case PlainText(text=t):
                if t.strip():
                    self._console.print(t, end="", highlight=False, markup=False)
            case ThinkingBlock(text=t):
                if self._show_thinking:
                    self._console.print(Text(f"○ thinking: {t}", style="dim italic"))
            case ToolCallDetected():
                pass  # The completed call is shown instead
            case ToolCallComplete(call=call):
                line = Text(f"◆ {call.name}", style="bold #7dd3fc")
                line.append(f"  {_summarize_params(call.parameters)}", style="#94a3b8")
                self._console.print(line)
            case ToolOutcomeEvent(outcome=o):
                body = o.text
                if len(body) > _MAX_RESULT_CHARS:
                    body = body[:_MAX_RESULT_CHARS] + "..."
                mark, style = ("✓", "green") if o.succeeded else ("✗", "red")
                self._console.print(Text(f"  {mark} {body}", style=style))
            case ApprovalRequested(description=d):
                self._console.print(Text(f"  awaiting approval: {d}", style="#fbbf24"))
            case CompletionDetected(result=r):
                self._console.print()
                self._console.print(Panel(Markdown(r), border_style="green", expand=False))
            case StatusChanged(new=TaskStatus.FAILED, reason=reason):
                self._console.print(Text(f"Task failed: {reason}", style="bold red"))
            case StatusChanged(new=TaskStatus.CANCELLED):
                self._console.print(Text("Task cancelled", style="bold yellow"))
            case _:
                pass
