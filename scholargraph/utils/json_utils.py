"""
Robust JSON extraction utilities for LLM responses.
"""

from __future__ import annotations

import json
import re
from typing import Any


def _loads_lenient(candidate: str) -> Any | None:
    # Clean trailing commas before closing
    cleaned = re.sub(r',\s*([}\]])', r'\1', candidate)
    try:
        return json.loads(cleaned)
    except ValueError:
        return None


def _balanced(text: str, open_ch: str, close_ch: str) -> str | None:
    start = text.find(open_ch)
    if start == -1:
        return None
    depth = 0
    in_string = False
    escaped = False
    for i, ch in enumerate(text[start:], start):
        if in_string:
            if escaped:
                escaped = False
            elif ch == '\\':
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == open_ch:
            depth += 1
        elif ch == close_ch:
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return None


def extract_json_value(text: str) -> Any | None:
    """Extract a JSON object or array from arbitrary model output.

    Handles common LLM output patterns:
    - Fenced code blocks ```json ... ```
    - Leading/trailing prose
    - Trailing commas before closing braces/brackets
    """
    if not isinstance(text, str):
        return None

    try:
        return json.loads(text)
    except ValueError:
        pass

    # Prefer fenced JSON blocks
    m = re.search(r"```(?:json)?\s*([\[{][\s\S]*?[\]}])\s*```", text, re.IGNORECASE)
    if m:
        value = _loads_lenient(m.group(1))
        if value is not None:
            return value

    # Whichever container opens first wins
    starts = [(text.find(o), o, c) for o, c in (('{', '}'), ('[', ']')) if text.find(o) != -1]
    for _, open_ch, close_ch in sorted(starts):
        candidate = _balanced(text, open_ch, close_ch)
        if candidate:
            value = _loads_lenient(candidate)
            if value is not None:
                return value
    return None


def extract_json_object(text: str) -> dict | None:
    """Like extract_json_value but only returns dicts."""
    value = extract_json_value(text)
    return value if isinstance(value, dict) else None
