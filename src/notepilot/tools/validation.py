"""Parameter validation and coercion against a ToolDef.

Tagged markup carries every value as text, so declared types are coerced
from strings: ``"true"`` becomes ``True``, ``"5"`` becomes ``5`` and JSON or
nested markup becomes lists and dicts.
"""

from __future__ import annotations

import json
import re
from typing import Any

from notepilot.errors import ValidationError
from notepilot.parsing.tags import parse_parameters
from notepilot.types.tools import ToolDef, ToolParam

_TRUE = frozenset({"true", "yes", "1"})
_FALSE = frozenset({"false", "no", "0"})
_ELEMENT_RE = re.compile(r"<([A-Za-z_]\w*)>(.*?)</\1>", re.DOTALL)


class _CoercionError(Exception):
    pass


def validate_parameters(schema: ToolDef, params: dict[str, Any]) -> dict[str, Any]:
    """Return a coerced copy of *params* or raise ValidationError.

    Parameters not declared in the schema are passed through unchanged.
    """
    problems: list[str] = []
    validated: dict[str, Any] = dict(params)

    for param in schema.parameters:
        value = params.get(param.name)
        if value is None:
            if param.required:
                problems.append(f"missing required parameter '{param.name}'")
            continue
        try:
            coerced = _coerce(param, value)
        except _CoercionError as exc:
            problems.append(f"'{param.name}' {exc}")
            continue
        if param.enum and coerced not in param.enum:
            problems.append(
                f"'{param.name}' must be one of {', '.join(param.enum)} (got {coerced!r})",
            )
            continue
        validated[param.name] = coerced

    if problems:
        raise ValidationError(schema.name, problems)
    return validated


def _coerce(param: ToolParam, value: Any) -> Any:
    match param.type:
        case "string":
            if isinstance(value, str):
                return value
            return json.dumps(value, ensure_ascii=False)
        case "integer":
            return _to_int(value)
        case "number":
            return _to_number(value)
        case "boolean":
            return _to_bool(value)
        case "array":
            return _to_list(value)
        case "object":
            return _to_dict(value)
        case _:
            return value


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        raise _CoercionError("must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise _CoercionError(f"must be an integer (got {value!r})")


def _to_number(value: Any) -> int | float:
    if isinstance(value, bool):
        raise _CoercionError("must be a number")
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            try:
                return float(text)
            except ValueError:
                pass
    raise _CoercionError(f"must be a number (got {value!r})")


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
    raise _CoercionError(f"must be a boolean (got {value!r})")


def _to_list(value: Any) -> list[Any]:
    if isinstance(value, list):
        return value
    if isinstance(value, tuple):
        return list(value)
    if not isinstance(value, str):
        raise _CoercionError(f"must be an array (got {type(value).__name__})")
    text = value.strip()
    if not text:
        return []
    if text.startswith("["):
        try:
            decoded = json.loads(text)
        except json.JSONDecodeError as exc:
            raise _CoercionError(f"is not a valid JSON array: {exc.msg}") from None
        if not isinstance(decoded, list):
            raise _CoercionError("must be an array")
        return decoded
    if text.startswith("<"):
        items: list[Any] = []
        for match in _ELEMENT_RE.finditer(text):
            inner = match.group(2)
            nested = parse_parameters(inner)
            items.append(nested if nested else inner.strip("\r\n"))
        return items
    return [part.strip() for part in text.split(",") if part.strip()]


def _to_dict(value: Any) -> dict[str, Any]:
    if isinstance(value, dict):
        return value
    if not isinstance(value, str):
        raise _CoercionError(f"must be an object (got {type(value).__name__})")
    text = value.strip()
    if text.startswith("{"):
        try:
            decoded = json.loads(text)
        except json.JSONDecodeError as exc:
            raise _CoercionError(f"is not a valid JSON object: {exc.msg}") from None
        if isinstance(decoded, dict):
            return decoded
    elif text.startswith("<"):
        return parse_parameters(text)
    raise _CoercionError("must be an object")
