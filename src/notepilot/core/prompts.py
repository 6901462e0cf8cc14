"""Prompt text the agent loop sends to the model."""

from __future__ import annotations

from notepilot.types.tools import ToolDef

SYSTEM_PROMPT = """\
You are a note-taking assistant working inside the user's notes workspace.

Use tools to read, search and change notes. Call a tool by writing its name as
an XML tag with each parameter as a nested tag, for example:

<read_note>
<path>projects/ideas.md</path>
</read_note>

Think privately inside <thinking>...</thinking> before acting. You may call
several tools in one reply; they run in the order you close them. When the
task is done, reply with:

<attempt_completion>
<result>your final answer</result>
</attempt_completion>

Every reply must contain at least one tool call or a completion.

Available tools:
{tools}
"""

PROTOCOL_CORRECTION = """\
Your response did not contain a valid tool call or a completion.
Either call one of the available tools, or finish the task with
<attempt_completion><result>...</result></attempt_completion>."""


def describe_tools(definitions: list[ToolDef]) -> str:
    """One line per tool: name, parameters (required marked with *) and description."""
    lines: list[str] = []
    for d in sorted(definitions, key=lambda t: t.name):
        params = ", ".join(f"{p.name}{'*' if p.required else ''}" for p in d.parameters)
        lines.append(f"- {d.name}({params}): {d.description}")
    return "\n".join(lines) or "(none)"


def build_system_prompt(definitions: list[ToolDef]) -> str:
    return SYSTEM_PROMPT.format(tools=describe_tools(definitions))


def wrap_task(task: str) -> str:
    return f"<task>\n{task}\n</task>"
