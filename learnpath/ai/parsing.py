"""
Recover JSON from LLM output that may be wrapped in prose or code fences.
"""

import json
import re
from typing import Any, Dict, List

_FENCED = re.compile(r"```(?:json)?\s*(.*?)```", re.IGNORECASE | re.DOTALL)


def _balanced_span(text: str, start: int) -> str:
    """Substring from ``start`` to its matching close bracket, string-aware."""
    opening = text[start]
    closing = "}" if opening == "{" else "]"
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == opening:
            depth += 1
        elif ch == closing:
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    # Unbalanced: fall back to the last closing bracket
    end = text.rfind(closing)
    return text[start:end + 1] if end > start else text[start:]


def extract_json(text: str) -> Any:
    """
    Parse JSON out of an LLM response.

    Tries, in order: the whole text, the first fenced code block, then the
    first ``{...}`` or ``[...]`` span (whichever opens first).

    Raises:
        ValueError: when no JSON value can be recovered.
    """
    if not text or not text.strip():
        raise ValueError("Empty response")
    stripped = text.strip()
    try:
        return json.loads(stripped)
    except ValueError:
        pass

    match = _FENCED.search(stripped)
    if match:
        try:
            return json.loads(match.group(1).strip())
        except ValueError:
            pass

    starts = [i for i in (stripped.find("{"), stripped.find("[")) if i != -1]
    if starts:
        candidate = _balanced_span(stripped, min(starts))
        try:
            return json.loads(candidate)
        except ValueError:
            pass

    raise ValueError("No valid JSON found in response")


def as_object_list(value: Any) -> List[Dict[str, Any]]:
    """Normalise a parsed response to a list of dicts (single object -> [object])."""
    if isinstance(value, dict):
        return [value]
    if isinstance(value, list):
        return [v for v in value if isinstance(v, dict)]
    return []
