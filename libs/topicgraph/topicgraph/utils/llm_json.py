"""Parse JSON out of LLM replies (code fences, think blocks, surrounding prose)."""

from __future__ import annotations

import json
import re
from typing import Any, cast

_THINK_BLOCK_RE = re.compile(r"^\s*<think>[\s\S]*?</think>\s*", re.IGNORECASE)
_THINK_TAG_RE = re.compile(r"</?think>\s*", re.IGNORECASE)
_FENCE_RES = (
    re.compile(r"```json\s*([\s\S]*?)\s*```"),
    re.compile(r"```\s*([\s\S]*?)\s*```"),
)

JSONData = dict[str, Any] | list[Any]


def _loads_container(text: str) -> JSONData:
    data = json.loads(text)
    if isinstance(data, dict):
        return cast(dict[str, Any], data)
    if isinstance(data, list):
        return data
    raise json.JSONDecodeError("Expected a JSON object/array", text, 0)


def parse_llm_json(text: str) -> JSONData:
    """Parse a JSON object/array from raw model output.

    Raises:
        json.JSONDecodeError: no JSON payload could be recovered.
    """
    text = (text or "").strip()
    text = _THINK_BLOCK_RE.sub("", text).strip()
    text = _THINK_TAG_RE.sub("", text).strip()

    for pattern in _FENCE_RES:
        match = pattern.search(text)
        if match:
            text = match.group(1).strip()
            break

    try:
        return _loads_container(text)
    except json.JSONDecodeError as exc:
        first_error = exc

    # Fall back to the outermost {...} or [...] span.
    starts = [(text.find(ch), ch) for ch in ("{", "[") if text.find(ch) != -1]
    if not starts:
        raise first_error
    start_idx, start_ch = min(starts)
    end_idx = text.rfind("}" if start_ch == "{" else "]")
    if end_idx <= start_idx:
        raise first_error
    return _loads_container(text[start_idx : end_idx + 1].strip())
