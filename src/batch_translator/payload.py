# SPDX-License-Identifier: Apache-2.0
"""Structured payload codec.

Select-element requests carry their segments as a JSON array of objects,
each with a ``text`` field:

    [{"text": "Hello"}, {"text": "World", "id": 7}]

Extra keys are preserved when the translated payload is rebuilt.
"""

from __future__ import annotations

import json
from typing import Any


class PayloadError(ValueError):
    """Structured payload could not be parsed."""


def parse_payload(text: str) -> list[dict[str, Any]]:
    """Parse a structured payload.

    Args:
        text: JSON text.

    Returns:
        List of item dicts, each with a string ``text`` field.

    Raises:
        PayloadError: If the text is not a JSON array of ``{"text": str}`` objects.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise PayloadError(f"Invalid JSON payload: {e.msg}") from e

    if not isinstance(data, list):
        raise PayloadError("Structured payload must be a JSON array")
    if not data:
        raise PayloadError("Structured payload must not be empty")

    for i, item in enumerate(data):
        if not isinstance(item, dict) or not isinstance(item.get("text"), str):
            raise PayloadError(f"Item {i} must be an object with a string 'text' field")
    return data


def try_parse_payload(text: str) -> list[dict[str, Any]] | None:
    """Parse a structured payload, returning None instead of raising."""
    try:
        return parse_payload(text)
    except PayloadError:
        return None


def payload_texts(items: list[dict[str, Any]]) -> list[str]:
    return [item["text"] for item in items]


def dump_payload(items: list[dict[str, Any]], texts: list[str]) -> str:
    """Rebuild a payload with replaced ``text`` fields.

    Args:
        items: Original items (left untouched).
        texts: New texts, one per item.

    Returns:
        JSON text of the rebuilt payload.
    """
    if len(items) != len(texts):
        raise ValueError(f"Expected {len(items)} texts but got {len(texts)}")
    rebuilt = [{**item, "text": text} for item, text in zip(items, texts)]
    return json.dumps(rebuilt, ensure_ascii=False, indent=2)
