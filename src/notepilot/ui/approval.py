"""Rich-formatted approval prompt for tool calls."""

from __future__ import annotations

import asyncio
import json
from typing import Any

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from notepilot.permissions.approval import ApprovalDecision
from notepilot.types.messages import ToolCall

_ALLOW = ("y", "yes")
_ALWAYS = ("a", "always")


def _preview(value: Any, limit: int) -> str:
    text = value if isinstance(value, str) else json.dumps(value, ensure_ascii=False)
    first, _, rest = text.partition("\n")
    if rest:
        extra = rest.count("\n") + 1
        first += f" (+{extra} lines)"
    if len(first) > limit:
        first = first[: limit - 3] + "..."
    return first


class RichApprovalSource:
    """Interactive approval prompt for the terminal.

    Shows the call description and a preview of its parameters, then reads
    ``y`` (allow once), ``a`` (allow this tool for the rest of the session)
    or anything else (deny). EOF and Ctrl-C deny.
    """

    def __init__(self, console: Console | None = None, max_value_len: int = 80) -> None:
        self._console = console or Console(stderr=True)
        self._max_value_len = max_value_len
        self.always_allowed: set[str] = set()

    def _render(self, call: ToolCall, description: str) -> Panel:
        body: list[Any] = [Text(description, style="#94a3b8")]
        if call.parameters:
            params = Table.grid(padding=(0, 2))
            params.add_column(style="cyan")
            params.add_column()
            for name, value in call.parameters.items():
                params.add_row(name, Text(_preview(value, self._max_value_len)))
            body.append(params)
        return Panel(
            Group(*body),
            title=Text(f" ◆ {call.name} ", style="bold #fbbf24"),
            border_style="#fbbf24",
            expand=False,
            padding=(0, 1),
        )

    async def request_approval(self, call: ToolCall, description: str) -> ApprovalDecision:
        if call.name in self.always_allowed:
            self._console.print(Text(f"auto-allowed {call.name}", style="#7c7c8a"))
            return ApprovalDecision.ALLOW

        self._console.print()
        self._console.print(self._render(call, description))

        loop = asyncio.get_running_loop()
        prompt_text = (
            "[bold #fbbf24]Allow?[/bold #fbbf24] "
            "[#7c7c8a](y = once, a = always, n)[/#7c7c8a] › "
        )
        try:
            self._console.print(prompt_text, end="")
            answer = await loop.run_in_executor(None, lambda: input(""))
        except (EOFError, KeyboardInterrupt):
            self._console.print()
            return ApprovalDecision.DENY

        answer = answer.strip().lower()
        if answer in _ALWAYS:
            self.always_allowed.add(call.name)
            return ApprovalDecision.ALLOW
        if answer in _ALLOW:
            return ApprovalDecision.ALLOW
        return ApprovalDecision.DENY
