"""Small text/time helpers shared by steps."""

from __future__ import annotations

import re

_UNSAFE_RE = re.compile(r"[^A-Za-z0-9._-]+")


def sanitize_filename(name: str, *, max_len: int = 120) -> str:
    cleaned = _UNSAFE_RE.sub("_", str(name or "").strip()).strip("._")
    return (cleaned or "untitled")[:max_len]


def format_duration(seconds: float) -> str:
    """`H:MM:SS` for an hour or more, else `M:SS`."""
    total = max(0, int(round(float(seconds))))
    hours, rem = divmod(total, 3600)
    minutes, secs = divmod(rem, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def truncate(text: str, limit: int) -> str:
    text = str(text or "")
    return text if len(text) <= limit else text[:limit]
