"""Strict JSON schemas derived from Pydantic models.

Response contracts are generated from the same models that validate the
responses, so the schema sent to the service can never drift from the
parser.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pydantic import BaseModel


def strict_json_schema(model: type[BaseModel]) -> dict[str, Any]:
    """Build a strict JSON schema for a Pydantic model.

    Every object node forbids additional properties and lists all of its
    properties as required.

    Args:
        model: Pydantic model class

    Returns:
        JSON schema dict (aliases used as property names)
    """
    return _make_strict(model.model_json_schema(by_alias=True))


def build_response_format(model: type[BaseModel], name: str | None = None) -> dict[str, Any]:
    """Build a chat-completions ``response_format`` directive for a model.

    Args:
        model: Pydantic model class describing the expected payload
        name: Schema name (defaults to the snake_cased model name)

    Returns:
        ``{"type": "json_schema", "json_schema": {...}}`` with ``strict`` set
    """
    return {
        "type": "json_schema",
        "json_schema": {
            "name": name or _snake_case(model.__name__),
            "strict": True,
            "schema": strict_json_schema(model),
        },
    }


def _make_strict(node: Any) -> Any:
    if isinstance(node, list):
        return [_make_strict(item) for item in node]
    if not isinstance(node, dict):
        return node

    out = {key: _make_strict(value) for key, value in node.items()}
    if out.get("type") == "object" and isinstance(out.get("properties"), dict):
        out["additionalProperties"] = False
        out["required"] = list(out["properties"].keys())
    return out


def _snake_case(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()
