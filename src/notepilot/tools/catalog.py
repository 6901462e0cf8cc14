"""Declarative schemas for the note-workspace tools.

Only names, parameters and approval requirements live here. Behavior
belongs to the handlers the surrounding application supplies.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from notepilot.tools.registry import ToolRegistry
from notepilot.types.tools import ToolDef, ToolHandler, ToolParam

logger = logging.getLogger(__name__)


def _p(name: str, type: str, description: str, required: bool = False, **kw) -> ToolParam:
    return ToolParam(name=name, type=type, description=description, required=required, **kw)


NOTE_TOOLS: tuple[ToolDef, ...] = (
    ToolDef("read_note", "Read the full content of a note.", (
        _p("path", "string", "Note path relative to the workspace", required=True),
    )),
    ToolDef("edit_note", "Apply search/replace edits to a note, optionally renaming it.", (
        _p("path", "string", "Note path", required=True),
        _p("edits", "array", "List of {search, replace} edits", required=True,
           items={"type": "object"}),
        _p("new_name", "string", "New file name"),
    )),
    ToolDef("create_note", "Create a new note with the given content.", (
        _p("path", "string", "Note path", required=True),
        _p("content", "string", "Markdown content", required=True),
    )),
    ToolDef("list_notes", "List notes in a directory.", (
        _p("directory", "string", "Directory to list (default: workspace root)"),
        _p("recursive", "boolean", "Include subdirectories"),
    )),
    ToolDef("create_folder", "Create a folder.", (
        _p("path", "string", "Folder path", required=True),
    )),
    ToolDef("move_file", "Move a note or folder.", (
        _p("from", "string", "Source path", required=True),
        _p("to", "string", "Destination path", required=True),
    )),
    ToolDef("rename_file", "Rename a note or folder.", (
        _p("path", "string", "Current path", required=True),
        _p("new_name", "string", "New name", required=True),
    )),
    ToolDef("delete_note", "Delete a note.", (
        _p("path", "string", "Note path", required=True),
    )),
    ToolDef("search_notes", "Search notes by title and content.", (
        _p("query", "string", "Search query", required=True),
        _p("directory", "string", "Restrict search to a directory"),
        _p("limit", "number", "Maximum number of results"),
    )),
    ToolDef("grep_search", "Literal or regular-expression search across notes.", (
        _p("query", "string", "Text or pattern", required=True),
        _p("directory", "string", "Restrict search to a directory"),
        _p("regex", "boolean", "Treat query as a regular expression"),
        _p("case_sensitive", "boolean", "Match case"),
        _p("limit", "number", "Maximum number of results"),
    )),
    ToolDef("semantic_search", "Search notes by meaning using the vector index.", (
        _p("query", "string", "Natural-language query", required=True),
        _p("directory", "string", "Restrict search to a directory"),
        _p("limit", "number", "Maximum number of results"),
        _p("min_score", "number", "Minimum similarity score"),
    )),
    ToolDef("deep_search", "Combined keyword and semantic search.", (
        _p("query", "string", "Search query", required=True),
        _p("limit", "number", "Maximum number of results"),
        _p("include_content", "boolean", "Include note content in results"),
    )),
    ToolDef("query_database", "Query rows of a note database.", (
        _p("database_id", "string", "Database identifier", required=True),
        _p("filter_column", "string", "Column to filter on"),
        _p("filter_value", "string", "Value to match"),
        _p("limit", "number", "Maximum number of rows"),
    )),
    ToolDef("add_database_row", "Add a row to a note database.", (
        _p("database_id", "string", "Database identifier", required=True),
        _p("cells", "object", "Column name to value mapping"),
    )),
    ToolDef("get_backlinks", "List notes that link to a note.", (
        _p("note_name", "string", "Target note name", required=True),
        _p("include_context", "boolean", "Include the linking paragraph"),
    )),
    ToolDef("generate_flashcards", "Generate flashcards from content.", (
        _p("content", "string", "Source text", required=True),
        _p("source_note", "string", "Note the content came from"),
        _p("deck", "string", "Target deck"),
        _p("types", "array", "Card types to generate", items={"type": "string"}),
        _p("count", "number", "Number of cards"),
        _p("language", "string", "Card language"),
    )),
    ToolDef("create_flashcard", "Create a single flashcard.", (
        _p("type", "string", "Card type", required=True,
           enum=("basic", "cloze", "basic-reversed", "mcq", "list")),
        _p("deck", "string", "Target deck"),
        _p("source", "string", "Source note"),
        _p("front", "string", "Front side"),
        _p("back", "string", "Back side"),
        _p("text", "string", "Cloze text"),
        _p("question", "string", "Multiple-choice question"),
        _p("options", "array", "Multiple-choice options", items={"type": "string"}),
        _p("answer", "number", "Index of the correct option"),
        _p("items", "array", "List items", items={"type": "string"}),
        _p("ordered", "boolean", "Whether list order matters"),
        _p("explanation", "string", "Explanation shown after answering"),
    )),
    ToolDef("read_cached_output", "Read a tool output that was truncated earlier.", (
        _p("id", "string", "Cached output id", required=True),
    )),
)

# Tools that change the workspace and therefore need the user's consent.
APPROVAL_REQUIRED = frozenset({
    "edit_note",
    "create_note",
    "create_folder",
    "move_file",
    "rename_file",
    "delete_note",
    "add_database_row",
})


def get_note_tool(name: str) -> ToolDef | None:
    for tool in NOTE_TOOLS:
        if tool.name == name:
            return tool
    return None


def register_note_tools(
    registry: ToolRegistry,
    handlers: Mapping[str, ToolHandler],
    *,
    approval_required: frozenset[str] = APPROVAL_REQUIRED,
) -> list[str]:
    """Register every catalog tool that has a handler. Returns the registered names."""
    registered: list[str] = []
    for tool in NOTE_TOOLS:
        handler = handlers.get(tool.name)
        if handler is None:
            logger.debug("No handler for %s, skipping", tool.name)
            continue
        registry.register(tool.name, tool, tool.name in approval_required, handler)
        registered.append(tool.name)
    unknown = set(handlers) - {t.name for t in NOTE_TOOLS}
    if unknown:
        logger.warning("Handlers supplied for unknown note tools: %s", ", ".join(sorted(unknown)))
    return registered
