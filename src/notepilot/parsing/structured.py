"""Normalization of structured (native function-calling) tool calls.

Backends that return tool calls on a separate channel are re-expressed as
tagged markup for the conversation history, so the model reads its past
calls in one syntax. Dispatch does not re-parse that markup: tool calls are
built directly by :func:`to_tool_call`, and only ``attempt_completion``
goes through the completion sentinel. The transform is pure and
order-preserving.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from typing import Any

from notepilot.parsing.tags import COMPLETION_RESULT_TAG, COMPLETION_TAG
from notepilot.types.messages import SourceFormat, ToolCall
from notepilot.types.providers import StructuredCall

logger = logging.getLogger(__name__)


def parse_arguments(raw: Mapping[str, Any] | str | None) -> dict[str, Any]:
    """Decode a structured call's arguments. Malformed JSON yields an empty dict."""
    if raw is None:
        return {}
    if isinstance(raw, Mapping):
        return dict(raw)
    if not raw.strip():
        return {}
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Discarding malformed tool arguments: %.80s", raw)
        return {}
    return value if isinstance(value, dict) else {}


def format_value(value: Any) -> str:
    """Serialize a parameter value for tagged markup."""
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def to_tagged_markup(name: str, parameters: Mapping[str, Any]) -> str:
    """Render a tool call as ``<name><param>value</param>...</name>``."""
    lines = [f"<{name}>"]
    for key, value in parameters.items():
        lines.append(f"<{key}>{format_value(value)}</{key}>")
    lines.append(f"</{name}>")
    return "\n".join(lines)


def completion_markup(result: str) -> str:
    """Render a completion result as the internal completion sentinel."""
    return f"<{COMPLETION_RESULT_TAG}>\n{result}\n</{COMPLETION_RESULT_TAG}>"


def normalize_call(call: StructuredCall) -> str:
    """Translate one structured call to markup."""
    args = parse_arguments(call.arguments)
    if call.name == COMPLETION_TAG:
        return completion_markup(format_value(args.get("result", "")))
    return to_tagged_markup(call.name, args)


def to_tool_call(call: StructuredCall, call_id: str) -> ToolCall:
    """Build the ToolCall for a structured call without a markup round trip.

    Names need not be valid tag identifiers and argument values are passed
    through untouched; the markup form is kept only as ``raw``.
    """
    args = parse_arguments(call.arguments)
    return ToolCall(
        name=call.name,
        parameters=args,
        call_id=call.call_id or call_id,
        source_format=SourceFormat.STRUCTURED,
        raw=to_tagged_markup(call.name, args),
    )


def normalize_structured_calls(text: str, calls: Iterable[StructuredCall]) -> str:
    """Append the markup form of *calls* to *text*, preserving order."""
    parts = [text] if text else []
    parts.extend(normalize_call(call) for call in calls)
    return "\n".join(parts)
