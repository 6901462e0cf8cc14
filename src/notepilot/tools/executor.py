"""ToolExecutor — validates and dispatches tool calls to their handlers."""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from typing import Any

from notepilot.errors import ExecutionError, UnknownToolError, ValidationError
from notepilot.tools.registry import ToolRegistry
from notepilot.tools.validation import validate_parameters
from notepilot.types.messages import ToolCall, ToolOutcome

logger = logging.getLogger(__name__)


def format_payload(result: Any) -> str:
    """Convert a handler's return value to the payload string the model sees."""
    if result is None:
        return ""
    if isinstance(result, str):
        return result
    try:
        return json.dumps(result, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return str(result)


class ToolExecutor:
    """Turns a ToolCall into exactly one ToolOutcome.

    Every failure mode (unknown tool, invalid parameters, handler error,
    timeout) becomes a failed outcome; nothing raised by a handler escapes.

    Usage::

        executor = ToolExecutor(registry)
        outcome = await executor.execute(call, timeout=30)
    """

    def __init__(self, registry: ToolRegistry) -> None:
        self._registry = registry

    async def execute(self, call: ToolCall, timeout: float | None = None) -> ToolOutcome:
        try:
            entry = self._registry.lookup(call.name)
        except UnknownToolError as exc:
            logger.warning("Model requested unknown tool %r", call.name)
            return ToolOutcome.fail(call, str(exc))

        try:
            params = validate_parameters(entry.definition, call.parameters)
        except ValidationError as exc:
            logger.warning("Rejected %s call %s: %s", call.name, call.call_id, exc)
            return ToolOutcome.fail(call, str(exc))

        try:
            result = await self._invoke(entry.handler, params, timeout)
        except TimeoutError:
            logger.warning("Tool %s timed out after %ss", call.name, timeout)
            return ToolOutcome.fail(call, f"Tool '{call.name}' timed out after {timeout}s")
        except ExecutionError as exc:
            logger.warning("Tool %s failed: %s", call.name, exc)
            return ToolOutcome.fail(call, f"Tool '{call.name}' failed: {exc}")
        except Exception as exc:  # noqa: BLE001
            logger.warning("Tool %s raised %s: %s", call.name, type(exc).__name__, exc)
            return ToolOutcome.fail(
                call, f"Tool '{call.name}' raised an unexpected error: {type(exc).__name__}: {exc}",
            )

        return ToolOutcome.ok(call, format_payload(result))

    @staticmethod
    async def _invoke(handler: Any, params: dict[str, Any], timeout: float | None) -> Any:
        if inspect.iscoroutinefunction(handler) or inspect.iscoroutinefunction(
            getattr(handler, "__call__", None),
        ):
            return await asyncio.wait_for(handler(params), timeout=timeout)
        # Sync handlers run off the event loop so other tasks keep streaming.
        result = await asyncio.wait_for(asyncio.to_thread(handler, params), timeout=timeout)
        if inspect.isawaitable(result):
            result = await asyncio.wait_for(result, timeout=timeout)
        return result
