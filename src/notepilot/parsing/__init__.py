"""Parsing of streamed model output into tool calls and sentinel blocks."""

from notepilot.parsing.structured import (
    completion_markup,
    normalize_call,
    normalize_structured_calls,
    parse_arguments,
    to_tagged_markup,
    to_tool_call,
)
from notepilot.parsing.tags import (
    RESERVED_TAGS,
    TagParser,
    coalesce_events,
    is_tool_tag,
    parse_parameters,
    parse_text,
)

__all__ = [
    "RESERVED_TAGS",
    "TagParser",
    "coalesce_events",
    "completion_markup",
    "is_tool_tag",
    "normalize_call",
    "normalize_structured_calls",
    "parse_arguments",
    "parse_parameters",
    "parse_text",
    "to_tagged_markup",
    "to_tool_call",
]
