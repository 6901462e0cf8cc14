"""Tool registry, validation and execution."""

from notepilot.tools.catalog import APPROVAL_REQUIRED, NOTE_TOOLS, register_note_tools
from notepilot.tools.executor import ToolExecutor
from notepilot.tools.registry import ToolRegistry
from notepilot.tools.validation import validate_parameters

__all__ = [
    "APPROVAL_REQUIRED",
    "NOTE_TOOLS",
    "ToolExecutor",
    "ToolRegistry",
    "register_note_tools",
    "validate_parameters",
]
